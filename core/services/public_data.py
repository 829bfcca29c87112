"""
Reference data served without authentication.

The group/component lists change only when seeded, so they are kept in
the Django cache; ``warm`` rebuilds them and is called by the
``warm_public_caches`` command.
"""
from __future__ import annotations

from django.conf import settings
from django.core.cache import cache
from rest_framework.exceptions import NotFound

from core.models import BloodBank, BloodComponent, BloodGroup, BloodStock
from core.services.db_functions import find_nearby_banks

GROUPS_KEY = 'public:blood-groups'
COMPONENTS_KEY = 'public:blood-components'


def _load_groups() -> list[dict]:
    return [{'blood_group_id': g.pk, 'group_name': g.group_name} for g in BloodGroup.objects.order_by('id')]


def _load_components() -> list[dict]:
    return [
        {'component_id': c.pk, 'component_name': c.component_name}
        for c in BloodComponent.objects.order_by('id')
    ]


def blood_groups() -> list[dict]:
    return cache.get_or_set(GROUPS_KEY, _load_groups, settings.PUBLIC_DATA_CACHE_SECONDS)


def blood_components() -> list[dict]:
    return cache.get_or_set(COMPONENTS_KEY, _load_components, settings.PUBLIC_DATA_CACHE_SECONDS)


def warm() -> dict:
    groups, components = _load_groups(), _load_components()
    cache.set(GROUPS_KEY, groups, settings.PUBLIC_DATA_CACHE_SECONDS)
    cache.set(COMPONENTS_KEY, components, settings.PUBLIC_DATA_CACHE_SECONDS)
    return {'blood_groups': len(groups), 'blood_components': len(components)}


def serialize_bank(bank: BloodBank, distance_km=None) -> dict:
    data = {
        'bank_id': bank.pk,
        'name': bank.name,
        'address': bank.address,
        'city': bank.city,
        'state': bank.state,
        'category': bank.category,
        'phone': bank.phone,
        'email': bank.email,
        'latitude': bank.latitude,
        'longitude': bank.longitude,
    }
    if distance_km is not None:
        data['distance_km'] = distance_km
    return data


def blood_banks(*, city=None, state=None, latitude=None, longitude=None, radius=25) -> list[dict]:
    qs = BloodBank.objects.all()
    if city:
        qs = qs.filter(city__icontains=city)
    if state:
        qs = qs.filter(state__icontains=state)
    if latitude is not None and longitude is not None:
        return [serialize_bank(b, d) for b, d in find_nearby_banks(latitude, longitude, radius, queryset=qs)]
    return [serialize_bank(b) for b in qs.order_by('name')]


def bank_stock(bank_id) -> list[dict]:
    if not BloodBank.objects.filter(pk=bank_id).exists():
        raise NotFound('Blood bank not found')
    rows = (
        BloodStock.objects.select_related('blood_group', 'component')
        .filter(bank_id=bank_id, units_available__gt=0)
        .order_by('blood_group_id', 'component_id')
    )
    return [
        {
            'blood_group': s.blood_group.group_name,
            'component': s.component.component_name,
            'units_available': s.units_available,
            'last_updated': s.last_updated,
        }
        for s in rows
    ]
