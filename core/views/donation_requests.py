"""
Donation request endpoints.

Patients create and manage their own requests; donors browse open
requests and respond. SOS requests fan out to nearby donors on create.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import IsAuthenticated

from core.models import Donor, Patient, User
from core.permissions import IsDonor
from core.responses import ok
from core.serializers.donation_requests import (
    DonationRequestCreateSerializer, RequestListQuerySerializer, RespondSerializer, StatusUpdateSerializer,
)
from core.services import donation_requests as request_service
from core.services.notifications import respond_to_request, serialize_notification
from core.throttling import AnonWindowThrottle, SOSCreateThrottle, UserWindowThrottle


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([AnonWindowThrottle, UserWindowThrottle, SOSCreateThrottle])
def requests_collection(request):
    if request.method == 'POST':
        return _create_request(request)
    q = RequestListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = request_service.list_requests(request.user, **q.validated_data)
    rows = [request_service.serialize_request(r) for r in qs]
    return ok({'requests': rows, 'total': len(rows)})


def _create_request(request):
    if request.user.user_type != User.TYPE_PATIENT:
        raise PermissionDenied('Only patients can create donation requests')
    patient = Patient.objects.filter(pk=request.user.pk).first()
    if patient is None:
        raise PermissionDenied('Patient profile not found')
    s = DonationRequestCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    req, count = request_service.create_request(patient, s.validated_data, actor=request.user)
    if req.urgency == 'SOS':
        SOSCreateThrottle.record(request)
    data = {
        'request_id': req.pk,
        'urgency': req.urgency,
        'status': req.status,
        'created_at': req.request_datetime,
        'notification_count': count,
    }
    message = f'SOS request created; {count} donor(s) notified' if req.urgency == 'SOS' else 'Request created'
    return ok(data, message, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def request_detail(request, request_id):
    return ok(request_service.request_detail(request.user, request_id))


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDonor])
def respond(request, request_id):
    s = RespondSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    donor = Donor.objects.filter(pk=request.user.pk).first()
    if donor is None:
        raise PermissionDenied('Donor profile not found')
    req = request_service.get_request(request_id)
    n = respond_to_request(donor, req, s.validated_data['response'] == 'accept')
    return ok(serialize_notification(n), 'Response recorded')


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def update_status(request, request_id):
    s = StatusUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    req = request_service.change_status(request.user, request_id, s.validated_data['status'])
    return ok({'request_id': req.pk, 'status': req.status}, 'Status updated')
