"""
Load the responder directory (hospitals and ambulances).

Reads a JSON file shaped ``{"hospitals": [...], "ambulances": [...]}`` or,
without ``--file``, seeds a small demo directory.  Rows are upserted by id.
"""
import json

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from care.models import Ambulance, Hospital

DEMO = {
    "hospitals": [
        {"id": "hosp-001", "name": "City Hospital", "address": "1 Main St", "latitude": 40.7128, "longitude": -74.0060},
        {"id": "hosp-002", "name": "Riverside Medical Center", "address": "200 River Rd",
         "latitude": 40.7306, "longitude": -73.9352},
    ],
    "ambulances": [
        {"id": "amb-101", "name": "Unit 101", "hospitalId": "hosp-001", "currentLocation": "Station A"},
        {"id": "amb-102", "name": "Unit 102", "hospitalId": "hosp-002", "currentLocation": "Station B"},
    ],
}


class Command(BaseCommand):
    help = "Upsert hospitals and ambulances into the responder directory."

    def add_arguments(self, parser):
        parser.add_argument("--file", help="JSON file with hospitals and ambulances")

    def handle(self, *args, **opts):
        data = DEMO
        if opts.get("file"):
            try:
                with open(opts["file"], encoding="utf-8") as fh:
                    data = json.load(fh)
            except (OSError, ValueError) as e:
                raise CommandError(f"cannot read {opts['file']}: {e}")

        with transaction.atomic():
            for h in data.get("hospitals", []):
                Hospital.objects.update_or_create(
                    id=h["id"],
                    defaults={"name": h["name"], "address": h.get("address", ""),
                              "latitude": h.get("latitude"), "longitude": h.get("longitude")},
                )
            for a in data.get("ambulances", []):
                Ambulance.objects.update_or_create(
                    id=a["id"],
                    defaults={"name": a["name"], "hospital_id": a.get("hospitalId"),
                              "current_location": a.get("currentLocation", ""),
                              "estimated_arrival_time": a.get("estimatedArrivalTime", "")},
                )
        self.stdout.write(self.style.SUCCESS(
            f"Responders ensured: {len(data.get('hospitals', []))} hospitals, "
            f"{len(data.get('ambulances', []))} ambulances"
        ))
