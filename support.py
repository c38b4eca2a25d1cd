import os

import resend
from markupsafe import escape

from database import get_db, get_placeholder, insert_returning_id
from errors import ValidationError

SUBJECT_MAX_LENGTH = 200
MESSAGE_MAX_LENGTH = 5000

# Inbox that gets a copy of every new ticket; unset disables the email
SUPPORT_EMAIL = os.environ.get('SUPPORT_EMAIL')


def _iso(value):
    return value.isoformat() if hasattr(value, 'isoformat') else value


def _ticket_dict(row):
    return {
        'id': row['id'],
        'userId': row['user_id'],
        'subject': row['subject'],
        'message': row['message'],
        'status': row['status'],
        'createdAt': _iso(row['created_at']),
    }


def notify_support(ticket, user_name):
    """Email the support inbox about a new ticket. Best effort."""
    if not resend.api_key or not SUPPORT_EMAIL:
        return False
    try:
        resend.Emails.send({
            "from": "Quiz Arena <noreply@quizarena.app>",
            "to": [SUPPORT_EMAIL],
            "subject": f"[Ticket #{ticket['id']}] {ticket['subject']}",
            "html": f'''
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h2>New support ticket from {escape(user_name)}</h2>
                <p><strong>{escape(ticket['subject'])}</strong></p>
                <p style="white-space: pre-wrap;">{escape(ticket['message'])}</p>
            </div>
            '''
        })
        return True
    except Exception as e:
        print(f"Resend email error: {e}")
        return False


def create_ticket(user_id, subject, message):
    subject = (subject or '').strip()
    message = (message or '').strip()
    if not subject or not message:
        raise ValidationError('Subject and message are required')
    if len(subject) > SUBJECT_MAX_LENGTH or len(message) > MESSAGE_MAX_LENGTH:
        raise ValidationError('Subject or message is too long')

    conn = get_db()
    cur = conn.cursor()
    ph = get_placeholder()

    ticket_id = insert_returning_id(cur, f'''
        INSERT INTO support_tickets (user_id, subject, message)
        VALUES ({ph}, {ph}, {ph})
    ''', (user_id, subject, message))
    conn.commit()

    cur.execute(f'SELECT * FROM support_tickets WHERE id = {ph}', (ticket_id,))
    ticket = _ticket_dict(cur.fetchone())
    conn.close()
    return ticket


def get_tickets(user_id):
    conn = get_db()
    cur = conn.cursor()
    ph = get_placeholder()
    cur.execute(f'''
        SELECT * FROM support_tickets
        WHERE user_id = {ph}
        ORDER BY created_at DESC, id DESC
    ''', (user_id,))
    tickets = [_ticket_dict(row) for row in cur.fetchall()]
    conn.close()
    return tickets
