"""
Management command to seed reference data and sample partner coupons.

Idempotent: rows are upserted on their natural keys, so it can run on
every deploy.
"""
from datetime import timedelta

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from core.models import BloodBank, BloodComponent, BloodGroup, Coupon
from core.services import public_data

BLOOD_GROUPS = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']

BLOOD_COMPONENTS = ['Whole Blood', 'Red Blood Cells', 'Platelets', 'Plasma', 'Cryoprecipitate']

BLOOD_BANKS = [
    {
        'name': 'City General Hospital Blood Bank',
        'address': '123 Main Street', 'city': 'Mumbai', 'state': 'Maharashtra', 'category': 'Hospital',
        'phone': '+91-22-12345678', 'email': 'bloodbank@citygeneral.com',
        'latitude': 19.0760, 'longitude': 72.8777,
    },
    {
        'name': 'Red Cross Blood Center',
        'address': '456 Health Avenue', 'city': 'Delhi', 'state': 'Delhi', 'category': 'NGO',
        'phone': '+91-11-87654321', 'email': 'donate@redcross.org',
        'latitude': 28.6139, 'longitude': 77.2090,
    },
    {
        'name': 'Apollo Hospital Blood Bank',
        'address': '789 Medical Complex', 'city': 'Bangalore', 'state': 'Karnataka', 'category': 'Hospital',
        'phone': '+91-80-11223344', 'email': 'bloodbank@apollo.com',
        'latitude': 12.9716, 'longitude': 77.5946,
    },
]

COUPONS = [
    {
        'partner_name': 'Pizza Palace', 'coupon_title': '20% Off on All Pizzas',
        'target_keywords': ['food', 'dining', 'pizza', 'restaurant'],
        'quantity_total': 100, 'discount_percentage': 20,
        'description': 'Get 20% discount on all pizza orders. Valid for dine-in and takeaway.',
    },
    {
        'partner_name': 'MovieMax Cinemas', 'coupon_title': 'Free Popcorn with Movie Ticket',
        'target_keywords': ['movies', 'entertainment', 'cinema', 'films'],
        'quantity_total': 50, 'discount_percentage': 0,
        'description': 'Get free medium popcorn with any movie ticket purchase.',
    },
    {
        'partner_name': 'Sports Zone', 'coupon_title': '15% Off Sports Equipment',
        'target_keywords': ['sports', 'cricket', 'fitness', 'games'],
        'quantity_total': 75, 'discount_percentage': 15,
        'description': '15% discount on all sports equipment and accessories.',
    },
    {
        'partner_name': 'BookWorld', 'coupon_title': 'Buy 2 Get 1 Free Books',
        'target_keywords': ['books', 'reading', 'literature', 'education'],
        'quantity_total': 30, 'discount_percentage': 33,
        'description': 'Buy any 2 books and get the 3rd one free. Valid on all genres.',
    },
]


class Command(BaseCommand):
    help = 'Seed blood groups, components, sample blood banks and sample coupons (idempotent).'

    def add_arguments(self, parser):
        parser.add_argument('--no-samples', action='store_true', help='Only seed blood groups and components.')

    @transaction.atomic
    def handle(self, *args, **options):
        for pk, name in enumerate(BLOOD_GROUPS, start=1):
            BloodGroup.objects.update_or_create(pk=pk, defaults={'group_name': name})
        for pk, name in enumerate(BLOOD_COMPONENTS, start=1):
            BloodComponent.objects.update_or_create(pk=pk, defaults={'component_name': name})
        self.stdout.write(self.style.SUCCESS(
            f'Blood groups: {len(BLOOD_GROUPS)}, components: {len(BLOOD_COMPONENTS)}'
        ))

        if not options['no_samples']:
            for bank in BLOOD_BANKS:
                BloodBank.objects.update_or_create(name=bank['name'], defaults=bank)
            expiry = timezone.localdate() + timedelta(days=365)
            for coupon in COUPONS:
                Coupon.objects.update_or_create(
                    partner_name=coupon['partner_name'],
                    coupon_title=coupon['coupon_title'],
                    defaults={**coupon, 'expiry_date': expiry, 'is_active': True},
                )
            self.stdout.write(self.style.SUCCESS(f'Blood banks: {len(BLOOD_BANKS)}, coupons: {len(COUPONS)}'))

        transaction.on_commit(public_data.warm)
