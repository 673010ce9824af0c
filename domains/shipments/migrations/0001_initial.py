import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Shipment",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("reference", models.CharField(blank=True, max_length=200)),
                ("tracking_number", models.CharField(blank=True, max_length=255)),
                ("tracker_id", models.CharField(blank=True, max_length=64, null=True)),
                ("delivered", models.BooleanField(default=False)),
                (
                    "tracking_status",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("Pending", "Pending"),
                            ("InfoReceived", "Label Created"),
                            ("InTransit", "In Transit"),
                            ("OutForDelivery", "Out for Delivery"),
                            ("AttemptFail", "Delivery Failed"),
                            ("Delivered", "Delivered"),
                            ("AvailableForPickup", "Ready for Pickup"),
                            ("Exception", "Exception"),
                            ("Expired", "Expired"),
                        ],
                        max_length=24,
                        null=True,
                    ),
                ),
                ("tracking_substatus", models.CharField(blank=True, max_length=64, null=True)),
                ("tracking_location", models.CharField(blank=True, max_length=200, null=True)),
                ("tracking_eta", models.DateField(blank=True, null=True)),
                ("tracking_updated_at", models.DateTimeField(blank=True, null=True)),
                ("tracking_checkpoints", models.JSONField(blank=True, default=list)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="shipments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [
                    models.Index(fields=["owner", "delivered"], name="shipments_owner_deliv_idx"),
                    models.Index(fields=["tracking_number"], name="shipments_tracking_no_idx"),
                    models.Index(fields=["tracker_id"], name="shipments_tracker_id_idx"),
                ],
            },
        ),
    ]
