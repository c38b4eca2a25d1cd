import random

CATEGORIES = {
    'science': {'name': 'Science', 'icon': 'flask-outline', 'color': '#10B981'},
    'geography': {'name': 'Geography', 'icon': 'globe-outline', 'color': '#38BDF8'},
    'history': {'name': 'History', 'icon': 'time-outline', 'color': '#F59E0B'},
    'math': {'name': 'Math', 'icon': 'calculator-outline', 'color': '#A855F7'},
    'literature': {'name': 'Literature', 'icon': 'book-outline', 'color': '#EC4899'},
    'technology': {'name': 'Technology', 'icon': 'hardware-chip-outline', 'color': '#06B6D4'},
    'sports': {'name': 'Sports', 'icon': 'football-outline', 'color': '#EF4444'},
    'culture': {'name': 'General Culture', 'icon': 'library-outline', 'color': '#8B5CF6'},
}

EASY_QUESTIONS = [
    {'text': 'What planet is known as the Red Planet?', 'options': ['Mars', 'Venus', 'Jupiter', 'Mercury'], 'correctIndex': 0, 'category': 'science'},
    {'text': 'What gas do plants absorb from the air?', 'options': ['Oxygen', 'Carbon dioxide', 'Nitrogen', 'Helium'], 'correctIndex': 1, 'category': 'science'},
    {'text': 'How many continents are there?', 'options': ['5', '6', '7', '8'], 'correctIndex': 2, 'category': 'geography'},
    {'text': 'What is the capital of Japan?', 'options': ['Osaka', 'Kyoto', 'Seoul', 'Tokyo'], 'correctIndex': 3, 'category': 'geography'},
    {'text': 'What is 7 x 8?', 'options': ['54', '56', '58', '64'], 'correctIndex': 1, 'category': 'math'},
    {'text': 'How many sides does a hexagon have?', 'options': ['6', '5', '8', '7'], 'correctIndex': 0, 'category': 'math'},
    {'text': 'How many players does a soccer team field?', 'options': ['9', '10', '11', '12'], 'correctIndex': 2, 'category': 'sports'},
    {'text': 'What does "www" stand for in a web address?', 'options': ['World Wide Web', 'Web World Wide', 'Wide Web World', 'World Web Wire'], 'correctIndex': 0, 'category': 'technology'},
    {'text': 'Who wrote "Romeo and Juliet"?', 'options': ['Charles Dickens', 'William Shakespeare', 'Jane Austen', 'Mark Twain'], 'correctIndex': 1, 'category': 'literature'},
    {'text': 'How many days are in a leap year?', 'options': ['364', '365', '366', '367'], 'correctIndex': 2, 'category': 'culture'},
    {'text': 'What is the largest ocean on Earth?', 'options': ['Atlantic', 'Indian', 'Arctic', 'Pacific'], 'correctIndex': 3, 'category': 'geography'},
    {'text': 'Which animal is the largest mammal?', 'options': ['Blue whale', 'Elephant', 'Giraffe', 'Orca'], 'correctIndex': 0, 'category': 'science'},
]

MEDIUM_QUESTIONS = [
    {'text': 'What is the chemical symbol for gold?', 'options': ['Go', 'Gd', 'Au', 'Ag'], 'correctIndex': 2, 'category': 'science'},
    {'text': 'Which river flows through Cairo?', 'options': ['Nile', 'Euphrates', 'Tigris', 'Jordan'], 'correctIndex': 0, 'category': 'geography'},
    {'text': 'In what year did World War II end?', 'options': ['1943', '1944', '1945', '1946'], 'correctIndex': 2, 'category': 'history'},
    {'text': 'Who was the first person to walk on the Moon?', 'options': ['Buzz Aldrin', 'Neil Armstrong', 'Yuri Gagarin', 'John Glenn'], 'correctIndex': 1, 'category': 'history'},
    {'text': 'What is the square root of 144?', 'options': ['11', '12', '13', '14'], 'correctIndex': 1, 'category': 'math'},
    {'text': 'Who wrote "One Hundred Years of Solitude"?', 'options': ['Pablo Neruda', 'Jorge Luis Borges', 'Isabel Allende', 'Gabriel Garcia Marquez'], 'correctIndex': 3, 'category': 'literature'},
    {'text': 'Who created the Python programming language?', 'options': ['Guido van Rossum', 'Dennis Ritchie', 'James Gosling', 'Bjarne Stroustrup'], 'correctIndex': 0, 'category': 'technology'},
    {'text': 'How often are the Summer Olympics held?', 'options': ['Every 2 years', 'Every 3 years', 'Every 4 years', 'Every 5 years'], 'correctIndex': 2, 'category': 'sports'},
    {'text': 'What is the hardest natural substance?', 'options': ['Quartz', 'Diamond', 'Granite', 'Iron'], 'correctIndex': 1, 'category': 'science'},
    {'text': 'Which desert is the largest hot desert in the world?', 'options': ['Gobi', 'Kalahari', 'Arabian', 'Sahara'], 'correctIndex': 3, 'category': 'geography'},
    {'text': 'Which instrument has 88 keys?', 'options': ['Piano', 'Organ', 'Harpsichord', 'Accordion'], 'correctIndex': 0, 'category': 'culture'},
    {'text': 'What does CPU stand for?', 'options': ['Central Process Unit', 'Central Processing Unit', 'Computer Personal Unit', 'Core Processing Utility'], 'correctIndex': 1, 'category': 'technology'},
]

HARD_QUESTIONS = [
    {'text': 'What is the most abundant gas in Earth\'s atmosphere?', 'options': ['Oxygen', 'Argon', 'Nitrogen', 'Carbon dioxide'], 'correctIndex': 2, 'category': 'science'},
    {'text': 'Which empire built Machu Picchu?', 'options': ['Aztec', 'Inca', 'Maya', 'Olmec'], 'correctIndex': 1, 'category': 'history'},
    {'text': 'In which year did the Berlin Wall fall?', 'options': ['1987', '1988', '1989', '1991'], 'correctIndex': 2, 'category': 'history'},
    {'text': 'What is the smallest prime number greater than 100?', 'options': ['101', '103', '107', '109'], 'correctIndex': 0, 'category': 'math'},
    {'text': 'What is the capital of Australia?', 'options': ['Sydney', 'Melbourne', 'Perth', 'Canberra'], 'correctIndex': 3, 'category': 'geography'},
    {'text': 'Who wrote "The Brothers Karamazov"?', 'options': ['Leo Tolstoy', 'Anton Chekhov', 'Fyodor Dostoevsky', 'Ivan Turgenev'], 'correctIndex': 2, 'category': 'literature'},
    {'text': 'What year was the first iPhone released?', 'options': ['2005', '2006', '2007', '2008'], 'correctIndex': 2, 'category': 'technology'},
    {'text': 'Which country has won the most FIFA World Cups?', 'options': ['Brazil', 'Germany', 'Italy', 'Argentina'], 'correctIndex': 0, 'category': 'sports'},
    {'text': 'What is the sum of the interior angles of a pentagon?', 'options': ['360', '450', '540', '720'], 'correctIndex': 2, 'category': 'math'},
    {'text': 'Which element has the atomic number 26?', 'options': ['Cobalt', 'Iron', 'Nickel', 'Copper'], 'correctIndex': 1, 'category': 'science'},
    {'text': 'Which city hosted the first modern Olympic Games?', 'options': ['Paris', 'London', 'Rome', 'Athens'], 'correctIndex': 3, 'category': 'sports'},
    {'text': 'Who painted "The Starry Night"?', 'options': ['Vincent van Gogh', 'Claude Monet', 'Paul Cezanne', 'Edgar Degas'], 'correctIndex': 0, 'category': 'culture'},
]

ALL_QUESTIONS = (
    [dict(q, id=f'easy_{i}', difficulty='simple') for i, q in enumerate(EASY_QUESTIONS)]
    + [dict(q, id=f'medium_{i}', difficulty='medium') for i, q in enumerate(MEDIUM_QUESTIONS)]
    + [dict(q, id=f'hard_{i}', difficulty='hard') for i, q in enumerate(HARD_QUESTIONS)]
)


def get_game_questions(count=30, category='all', rng=None):
    """Random sample of questions, optionally limited to one category."""
    rng = rng or random
    if category == 'all':
        pool = ALL_QUESTIONS
    else:
        pool = [q for q in ALL_QUESTIONS if q['category'] == category]
    return rng.sample(pool, min(count, len(pool)))
