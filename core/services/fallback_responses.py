"""
Rule-based CareBot replies used when no LLM is configured or it fails.

A reply is assembled from a template picked by topic and mood, plus
suggestions drawn from the user's interests (or a prompt asking for
them) and a line specific to patients or donors.
"""
from __future__ import annotations

import random

MOOD_KEYWORDS = {
    'sad': ['sad', 'down', 'depressed', 'upset', 'crying', 'unhappy', 'miserable', 'heartbroken'],
    'bored': ['bored', 'boring', 'nothing to do', 'dull', 'tedious', 'uninteresting'],
    'worried': ['worried', 'anxious', 'concerned', 'nervous', 'scared', 'afraid', 'stress'],
    'happy': ['happy', 'excited', 'great', 'wonderful', 'amazing', 'fantastic', 'good'],
    'tired': ['tired', 'exhausted', 'sleepy', 'fatigue', 'weary', 'drained'],
    'angry': ['angry', 'mad', 'furious', 'annoyed', 'frustrated', 'irritated'],
}

TOPIC_KEYWORDS = {
    'thalassemia': ['thalassemia', 'blood disorder', 'hemoglobin', 'transfusion'],
    'donation': ['donate', 'donation', 'blood bank', 'donor'],
    'health': ['health', 'wellness', 'medical', 'doctor', 'treatment'],
    'emergency': ['emergency', 'urgent', 'help', 'crisis'],
    'mood': ['sad', 'happy', 'bored', 'tired', 'excited', 'worried', 'anxious'],
}

TEMPLATES = {
    'thalassemia': {
        'base': 'Thalassemia is a genetic blood disorder that affects hemoglobin production. Regular blood '
                'transfusions and proper medical care are essential. Please consult with your hematologist '
                'for personalized advice.',
        'with_interests': ' In the meantime, {suggestions} can help maintain a positive outlook during treatment.',
        'without_interests': " What activities do you usually enjoy? I'd be happy to suggest ways to stay "
                             'positive during your treatment.',
        'user_type': {
            'patient': 'Remember to follow your treatment schedule and stay in touch with your medical team.',
            'donor': 'Thank you for your support in helping Thalassemia patients through blood donation.',
        },
    },
    'mood_sad': {
        'base': "I'm sorry to hear you're feeling down. It's completely normal to have difficult days, "
                'especially when dealing with health challenges.',
        'with_interests': " Since you enjoy {suggestions}, these activities might help lift your spirits.",
        'without_interests': " What activities or interests usually help you feel better? I'd love to suggest "
                             'something that might brighten your day.',
        'user_type': {
            'patient': "Remember that you're not alone in this journey, and it's okay to have tough days.",
            'donor': 'Your generosity in helping others shows what a caring person you are.',
        },
    },
    'mood_bored': {
        'base': "I understand you're feeling bored. Sometimes we all need something engaging to do.",
        'with_interests': ' How about {suggestions}? These might be just what you need right now.',
        'without_interests': " What are some activities or hobbies you usually enjoy? I'd be happy to suggest "
                             'something fun based on your interests.',
        'user_type': {
            'patient': 'Staying engaged with enjoyable activities is important for your overall well-being.',
            'donor': 'Taking time for yourself and your interests is important too!',
        },
    },
    'mood_worried': {
        'base': "I can sense you're feeling worried. It's natural to have concerns, especially about health matters.",
        'with_interests': ' Sometimes {suggestions} can help take your mind off worries and provide some relief.',
        'without_interests': ' What activities usually help you relax and feel more at ease?',
        'user_type': {
            'patient': "If you have medical concerns, please don't hesitate to contact your healthcare provider.",
            'donor': 'Your caring nature shows through your concern for others.',
        },
    },
    'health': {
        'base': 'Maintaining good health involves regular exercise, balanced nutrition, adequate sleep, and '
                'routine medical checkups.',
        'with_interests': " I see you're interested in {suggestions}, which can be great for your overall well-being!",
        'without_interests': ' What activities do you enjoy that help you stay healthy and active?',
        'user_type': {
            'patient': 'For Thalassemia patients, following your treatment plan is crucial for maintaining good health.',
            'donor': "As a blood donor, you're already contributing to community health. Thank you!",
        },
    },
    'donation': {
        'base': 'Blood donation is a noble act that saves lives! Healthy individuals can donate blood every 3 months.',
        'with_interests': ' After donating, make sure to rest and perhaps enjoy {suggestions} while you recover.',
        'without_interests': ' What do you like to do to relax after helping others?',
        'user_type': {
            'patient': 'Thank you for your interest in blood donation. Please check with your doctor about your eligibility.',
            'donor': "Thank you for being a regular blood donor. You're making a real difference in people's lives!",
        },
    },
    'emergency': {
        'base': 'For medical emergencies, please contact your healthcare provider immediately or call emergency '
                "services. I'm here to provide general information and support.",
        'with_interests': '',
        'without_interests': '',
        'user_type': {
            'patient': 'If this is about your Thalassemia treatment, contact your hematologist or treatment center immediately.',
            'donor': "If you're experiencing issues after donation, contact the blood bank or your healthcare provider.",
        },
    },
    'default': {
        'base': "I'm here to help you with information about Thalassemia care, blood donation, and general health topics.",
        'with_interests': " I also notice you're interested in {suggestions}, so feel free to chat about those topics too!",
        'without_interests': ' What would you like to know more about?',
        'user_type': {
            'patient': "As a Thalassemia patient, I'm here to support you with information and encouragement.",
            'donor': 'Thank you for being a blood donor. Your generosity helps save lives every day.',
        },
    },
}

INTEREST_SUGGESTIONS = {
    'cricket': {
        'sad': ['watching your favorite cricket highlights', 'reading about inspiring cricket comebacks'],
        'bored': ['checking live cricket scores', 'watching cricket match highlights'],
        'worried': ['listening to cricket commentary', 'reading cricket news'],
        'neutral': ['following your favorite cricket team', 'watching cricket videos'],
    },
    'movies': {
        'sad': ['watching a feel-good comedy movie', 'enjoying a heartwarming Bollywood film'],
        'bored': ['exploring new movie releases', 'watching movie trailers'],
        'worried': ['watching a light comedy', 'enjoying a relaxing movie'],
        'neutral': ['watching your favorite movies', 'discovering new films'],
    },
    'music': {
        'sad': ['listening to uplifting music', 'playing your favorite songs'],
        'bored': ['discovering new music', 'creating a playlist'],
        'worried': ['listening to calming music', 'enjoying soothing melodies'],
        'neutral': ['listening to your favorite music', 'exploring new artists'],
    },
    'food': {
        'sad': ['trying a comforting recipe', 'ordering your favorite meal'],
        'bored': ['exploring new recipes', 'watching cooking videos'],
        'worried': ['preparing a simple, healthy meal', 'trying some herbal tea'],
        'neutral': ['cooking something delicious', 'exploring new cuisines'],
    },
    'books': {
        'sad': ['reading an inspiring book', 'enjoying a comforting story'],
        'bored': ['starting a new book', 'exploring different genres'],
        'worried': ['reading something light and positive', 'enjoying poetry'],
        'neutral': ['reading your favorite books', 'discovering new authors'],
    },
    'travel': {
        'sad': ['looking at photos from happy trips', 'planning future adventures'],
        'bored': ['exploring virtual tours online', 'reading travel blogs'],
        'worried': ['looking at peaceful travel destinations', 'planning relaxing getaways'],
        'neutral': ['planning your next trip', 'exploring new destinations'],
    },
    'fitness': {
        'sad': ['doing some light stretching', 'taking a gentle walk'],
        'bored': ['trying a new workout routine', 'going for a walk'],
        'worried': ['doing some relaxing yoga', 'taking deep breaths'],
        'neutral': ['staying active with exercise', 'maintaining your fitness routine'],
    },
    'art': {
        'sad': ['creating something beautiful', 'looking at inspiring artwork'],
        'bored': ['trying a new art project', 'visiting virtual museums'],
        'worried': ['doing some relaxing drawing', 'enjoying peaceful art'],
        'neutral': ['exploring your creativity', 'enjoying artistic activities'],
    },
}


def detect_mood(text: str) -> str:
    text = (text or '').lower()
    for mood, words in MOOD_KEYWORDS.items():
        if any(w in text for w in words):
            return mood
    return 'neutral'


def detect_topic(text: str) -> str:
    text = (text or '').lower()
    for topic, words in TOPIC_KEYWORDS.items():
        if any(w in text for w in words):
            return topic
    return 'general'


def select_template(topic: str, mood: str, user_type: str) -> dict:
    for key in (f'{topic}_{mood}_{user_type}', f'{topic}_{mood}', f'mood_{mood}' if topic == 'mood' else None, topic):
        if key and key in TEMPLATES:
            return TEMPLATES[key]
    return TEMPLATES['default']


def interest_suggestions(interests, mood: str, *, limit: int = 2) -> str:
    picks = []
    for interest in list(interests or [])[:limit]:
        options = INTEREST_SUGGESTIONS.get(str(interest).lower())
        if not options:
            continue
        pool = options.get(mood) or options.get('neutral') or []
        if pool:
            picks.append(random.choice(pool))
    if picks:
        return ' or '.join(picks)
    if not interests:
        return ''
    return 'engaging with your interests in ' + ' and '.join(list(interests)[:limit])


def get_personalized_fallback(prompt: str, interests=None, user_type: str = 'patient') -> str:
    user_type = (user_type or 'patient').lower()
    mood = detect_mood(prompt)
    topic = detect_topic(prompt)
    template = select_template(topic, mood, user_type)

    reply = template['base']
    if interests:
        suggestions = interest_suggestions(interests, mood)
        if suggestions and template['with_interests']:
            reply += template['with_interests'].format(suggestions=suggestions)
    else:
        reply += template['without_interests']

    extra = template['user_type'].get(user_type)
    if extra:
        reply += ' ' + extra
    return reply
