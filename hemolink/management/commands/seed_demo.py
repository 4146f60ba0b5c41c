import datetime
import random

from django.core.management.base import BaseCommand

from hemolink import donors, hospitals
from hemolink.db import get_store
from hemolink.eligibility import BLOOD_GROUPS
from hemolink.timeutils import to_iso, utcnow

FIRST_NAMES = ["James", "Mary", "John", "Patricia", "Robert", "Jennifer", "Michael", "Linda",
               "William", "Elizabeth", "David", "Barbara", "Richard", "Susan", "Joseph", "Jessica"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis"]
AREAS = ["Central", "Indiranagar", "Koramangala", "Whitefield", "Jayanagar"]


class Command(BaseCommand):
    help = "Seed demo hospitals and donors around a centre coordinate"

    def add_arguments(self, parser):
        parser.add_argument('--lat', type=float, default=12.9716)
        parser.add_argument('--lng', type=float, default=77.5946)
        parser.add_argument('--donors', type=int, default=30)
        parser.add_argument('--spread', type=float, default=0.1,
                            help="max coordinate offset in degrees (0.1 is about 11 km)")

    def handle(self, *args, **options):
        store = get_store()
        lat, lng, spread = options['lat'], options['lng'], options['spread']
        now = utcnow()

        for i, area in enumerate(AREAS):
            email = f"hospital_{i + 1}@test.com"
            if hospitals.find_by_email_and_license(store, email, f"LIC-{i + 1:04d}"):
                continue
            hospitals.register(store, {
                "name": f"{area} General Hospital",
                "license": f"LIC-{i + 1:04d}",
                "email": email,
                "contact": f"080{random.randint(2000000, 9999999)}",
                "location": {"lat": lat + random.uniform(-spread, spread),
                             "lng": lng + random.uniform(-spread, spread)},
                "password": "hospital123",
            })

        created = 0
        for i in range(options['donors']):
            email = f"donor_{i + 1}@test.com"
            if donors.find_by_email(store, email):
                continue
            donor = donors.register(store, {
                "name": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
                "email": email,
                "bloodGroup": random.choice(BLOOD_GROUPS),
                "phone": f"98{random.randint(10000000, 99999999)}",
                "location": {"lat": lat + random.uniform(-spread, spread),
                             "lng": lng + random.uniform(-spread, spread)},
                "password": "donor123",
            })
            # every fifth donor gave blood recently and is still resting
            if i % 5 == 0:
                donated = now - datetime.timedelta(days=random.randint(1, 50))
                store.patch('donors', donor['id'], {
                    "status": "inactive",
                    "lastDonationApproved": to_iso(donated),
                    "donationCount": 1,
                })
            created += 1

        store.wait_for_writes()
        self.stdout.write(self.style.SUCCESS(f"Seeded {created} donors and {len(AREAS)} hospitals"))
