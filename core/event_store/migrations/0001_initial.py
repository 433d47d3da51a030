import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="OperationalRecord",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("lineage_root_id", models.UUIDField(blank=True, null=True, help_text="Id of the first version. Null on the first version itself.")),
                ("version_no", models.PositiveIntegerField(default=1, help_text="1-based version counter inside the lineage.")),
                ("entity_kind", models.CharField(max_length=50, help_text="Log partition, e.g. front_desk or storekeeper.")),
                ("status", models.CharField(
                    choices=[
                        ("pending", "Pending"),
                        ("approved", "Approved"),
                        ("rejected", "Rejected"),
                        ("cancelled", "Cancelled"),
                        ("expired", "Expired"),
                        ("converted", "Converted"),
                    ],
                    default="pending",
                    max_length=20,
                )),
                ("payload", models.JSONField(default=dict, help_text="Tagged payload; payload['type'] discriminates the record.")),
                ("financial_amount", models.BigIntegerField(default=0)),
                ("submitted_by", models.CharField(blank=True, max_length=255, null=True)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "db_table": "frontdesk_operational_record",
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="Room",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("room_number", models.CharField(max_length=20)),
                ("room_name", models.CharField(blank=True, default="", max_length=100)),
                ("room_type", models.CharField(blank=True, default="", max_length=50)),
                ("price_per_night", models.BigIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "db_table": "frontdesk_room",
                "ordering": ["room_number"],
            },
        ),
        migrations.AddIndex(
            model_name="operationalrecord",
            index=models.Index(fields=["entity_kind", "status"], name="idx_rec_kind_status"),
        ),
        migrations.AddIndex(
            model_name="operationalrecord",
            index=models.Index(fields=["lineage_root_id"], name="idx_rec_lineage_root"),
        ),
        migrations.AddIndex(
            model_name="operationalrecord",
            index=models.Index(fields=["created_at"], name="idx_rec_created"),
        ),
        migrations.AddConstraint(
            model_name="operationalrecord",
            constraint=models.UniqueConstraint(fields=("lineage_root_id", "version_no"), name="uq_rec_lineage_version"),
        ),
    ]
