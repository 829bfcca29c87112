"""
Partner integration endpoints (hospitals, blood drives).

Partners authenticate with ``X-API-Key`` instead of a user token; see
``core.authentication.PartnerKeyAuthentication``.
"""
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import AllowAny

from core.authentication import PartnerKeyAuthentication
from core.models import DonationRequest, Patient
from core.responses import ok
from core.serializers.donation_requests import PartnerSOSSerializer
from core.serializers.donors import PartnerDonorSerializer
from core.services import accounts
from core.services import donation_requests as request_service
from core.throttling import throttle_scope


@throttle_scope('partner')
@api_view(['POST'])
@authentication_classes([PartnerKeyAuthentication])
@permission_classes([AllowAny])
def partner_sos(request):
    s = PartnerSOSSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = dict(s.validated_data)
    patient = Patient.objects.filter(pk=vd.pop('patient_id')).first()
    if patient is None:
        raise NotFound('Patient not found')
    vd['urgency'] = DonationRequest.URGENCY_SOS
    req, count = request_service.create_request(patient, vd)
    return ok({'request_id': req.pk, 'notification_count': count},
              f'SOS request created; {count} donor(s) notified', status=status.HTTP_201_CREATED)


@throttle_scope('partner')
@api_view(['POST'])
@authentication_classes([PartnerKeyAuthentication])
@permission_classes([AllowAny])
def partner_register_donor(request):
    s = PartnerDonorSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user, temporary = accounts.register_partner_donor(s.validated_data)
    return ok({'user_id': user.pk, 'email': user.email, 'temporary_password': temporary},
              'Donor registered', status=status.HTTP_201_CREATED)
