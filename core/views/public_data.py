from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny

from core.responses import ok
from core.serializers.public import BankQuerySerializer
from core.services import public_data


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def blood_groups(request):
    return ok(public_data.blood_groups())


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def blood_components(request):
    return ok(public_data.blood_components())


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def blood_banks(request):
    q = BankQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return ok(public_data.blood_banks(**q.validated_data))


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def bank_stock(request, bank_id):
    return ok(public_data.bank_stock(bank_id))
