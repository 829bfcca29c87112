"""
Dashboard endpoints.

Each per-user endpoint may be read by that user or by an admin; the
aggregation itself is in ``core.services.dashboard``.
"""
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated

from core.permissions import ensure_self_or_admin
from core.responses import ok
from core.serializers.public import DashboardLimitSerializer
from core.services import dashboard


def _params(request) -> dict:
    q = DashboardLimitSerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    return q.validated_data


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_stats(request, user_id):
    ensure_self_or_admin(request.user, user_id)
    return ok(dashboard.patient_stats(user_id))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def donor_stats(request, user_id):
    ensure_self_or_admin(request.user, user_id)
    return ok(dashboard.donor_stats(user_id))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def patient_requests(request, user_id):
    ensure_self_or_admin(request.user, user_id)
    return ok(dashboard.patient_requests(user_id, _params(request)['limit']))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def available_requests(request):
    p = _params(request)
    if p.get('donor_id'):
        ensure_self_or_admin(request.user, p['donor_id'])
    return ok(dashboard.available_requests(p['limit'], p.get('donor_id')))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def donor_notifications(request, donor_id):
    ensure_self_or_admin(request.user, donor_id)
    return ok(dashboard.donor_notifications(donor_id, _params(request)['limit']))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def donor_donations(request, donor_id):
    ensure_self_or_admin(request.user, donor_id)
    return ok(dashboard.donor_donations(donor_id, _params(request)['limit']))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def health_tips(request):
    return ok(dashboard.health_tips(_params(request).get('user_type') or request.user.user_type))
