"""
Personalization and CareBot endpoints under ``/api/ai``.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from core.models import Patient
from core.permissions import IsAdminType, IsPatient
from core.responses import ok
from core.serializers.ai import CareBotQuerySerializer, HistoryQuerySerializer
from core.services import carebot, personalization
from core.throttling import throttle_scope


def _interests(request):
    if request.method == 'GET':
        return ok({'interests': personalization.get_interests(request.user)})
    interests = personalization.set_interests(request.user, request.data.get('interests'))
    return ok({'interests': interests}, 'Interests updated successfully')


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated])
def interests(request):
    return _interests(request)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsPatient])
def patient_interests(request):
    return _interests(request)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def enrich_interests(request):
    return ok(personalization.enrich_interests(request.user), 'Interests enriched')


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminType])
def interest_stats(request):
    return ok(personalization.interest_stats())


@throttle_scope('ai')
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsPatient])
def carebot_query(request):
    s = CareBotQuerySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = Patient.objects.filter(pk=request.user.pk).first()
    if patient is None:
        raise PermissionDenied('Patient profile not found')
    reply = carebot.answer(request.user, patient, s.validated_data['message'])
    return ok({'response': reply.response, 'source': reply.source})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def carebot_history(request):
    q = HistoryQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    rows = carebot.history(request.user, **q.validated_data)
    return ok([
        {'chat_id': c.pk, 'prompt': c.prompt, 'response': c.response, 'source': c.source, 'timestamp': c.timestamp}
        for c in rows
    ])
