from decimal import Decimal

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("ledger", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="BankStatement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("account_name", models.CharField(blank=True, default="", max_length=255)),
                ("statement_date", models.DateField(default=django.utils.timezone.localdate)),
                ("file_name", models.CharField(blank=True, default="", max_length=255)),
                ("row_count", models.PositiveIntegerField(default=0)),
                ("matched_count", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bank_statements",
                        to="ledger.tenant",
                    ),
                ),
            ],
            options={"ordering": ["-created_at", "-id"]},
        ),
        migrations.CreateModel(
            name="BankRow",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("txn_date", models.DateField(db_index=True)),
                ("description", models.CharField(max_length=500)),
                ("amount", models.DecimalField(decimal_places=4, max_digits=19)),
                (
                    "direction",
                    models.CharField(choices=[("IN", "Deposit"), ("OUT", "Withdrawal")], max_length=3),
                ),
                (
                    "hash",
                    models.CharField(
                        help_text="SHA-256 of date, amount, normalized description and direction.",
                        max_length=64,
                    ),
                ),
                ("matched", models.BooleanField(db_index=True, default=False)),
                (
                    "matched_target_type",
                    models.CharField(
                        blank=True,
                        choices=[("invoice", "Invoice"), ("bill", "Bill")],
                        max_length=10,
                        null=True,
                    ),
                ),
                ("matched_target_id", models.PositiveBigIntegerField(blank=True, null=True)),
                ("matched_at", models.DateTimeField(blank=True, null=True)),
                (
                    "journal",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="bank_rows",
                        to="ledger.journal",
                    ),
                ),
                (
                    "statement",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rows",
                        to="banking.bankstatement",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="bank_rows",
                        to="ledger.tenant",
                    ),
                ),
            ],
            options={
                "ordering": ["txn_date", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("tenant", "hash"), name="unique_bank_row_hash_per_tenant"),
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", Decimal("0"))),
                        name="bank_row_amount_positive",
                    ),
                ],
            },
        ),
    ]
