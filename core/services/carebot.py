"""
CareBot: a supportive chat companion for patients.

Replies come from an OpenAI-compatible chat-completions endpoint (the
Hugging Face router by default) when ``HF_TOKEN`` and
``HF_MODEL_REPO_ID`` are set; any failure there falls back to the
rule-based templates in ``fallback_responses``. Every exchange is kept
in ``ChatHistory``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import requests
from django.conf import settings

from core.models import ChatHistory, Patient, User
from core.services import fallback_responses

logger = logging.getLogger(__name__)


@dataclass
class CareBotReply:
    response: str
    source: str


def _system_prompt(name: str, conditions: str, interests: list[str]) -> str:
    return (
        'You are CareBot, a compassionate AI companion for patients with blood disorders like Thalassemia. '
        'You provide emotional support, encouragement, and helpful information.\n\n'
        'Patient Information:\n'
        f'- Name: {name}\n'
        f'- Medical Conditions: {conditions or "Not specified"}\n'
        f'- Interests: {", ".join(interests) or "None specified"}\n\n'
        'Respond with empathy, understanding, and support. Provide accurate information but remind the '
        'patient to consult their doctor, and direct emergencies to immediate medical care. '
        'Keep responses concise (max 150 words).'
    )


def llm_enabled() -> bool:
    return bool(settings.HF_TOKEN and settings.HF_MODEL_REPO_ID)


def call_llm(system_prompt: str, message: str) -> str:
    r = requests.post(
        f'{settings.HF_BASE_URL}/chat/completions',
        headers={'Authorization': f'Bearer {settings.HF_TOKEN}'},
        json={
            'model': settings.HF_MODEL_REPO_ID,
            'messages': [
                {'role': 'system', 'content': system_prompt},
                {'role': 'user', 'content': message},
            ],
            'max_tokens': 150,
            'temperature': 0.7,
        },
        timeout=settings.HF_TIMEOUT,
    )
    r.raise_for_status()
    content = r.json()['choices'][0]['message']['content']
    if not isinstance(content, str):
        raise ValueError(f'unexpected completion content: {type(content).__name__}')
    content = content.strip()
    if not content:
        raise ValueError('empty completion')
    return content


def answer(user: User, patient: Patient, message: str) -> CareBotReply:
    interests = list(patient.taste_keywords or [])
    reply = None
    if llm_enabled():
        try:
            reply = CareBotReply(
                call_llm(_system_prompt(user.full_name, patient.medical_conditions, interests), message), 'llm'
            )
        except (requests.RequestException, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning('CareBot LLM call failed, falling back: %s', e)
    if reply is None:
        reply = CareBotReply(
            fallback_responses.get_personalized_fallback(message, interests, user.user_type), 'fallback'
        )
    ChatHistory.objects.create(user=user, prompt=message, response=reply.response, source=reply.source)
    return reply


def history(user: User, *, limit: int = 50, offset: int = 0):
    return ChatHistory.objects.filter(user=user).order_by('-timestamp', '-id')[offset:offset + limit]
