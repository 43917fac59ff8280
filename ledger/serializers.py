from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from .models import AccountingPeriod, Journal, JournalLine
from .posting import LineInput


class JournalLineSerializer(serializers.ModelSerializer):
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = JournalLine
        fields = [
            "id",
            "line_number",
            "account",
            "account_code",
            "account_name",
            "debit",
            "credit",
            "tax_rate",
            "description",
            "department",
        ]
        read_only_fields = fields


class JournalSerializer(serializers.ModelSerializer):
    lines = JournalLineSerializer(many=True, read_only=True)
    total_debit = serializers.SerializerMethodField()
    total_credit = serializers.SerializerMethodField()

    class Meta:
        model = Journal
        fields = [
            "id",
            "date",
            "memo",
            "period",
            "source_type",
            "source_id",
            "source_event",
            "is_approved",
            "approved_at",
            "created_at",
            "updated_at",
            "lines",
            "total_debit",
            "total_credit",
        ]
        read_only_fields = fields

    def get_total_debit(self, obj: Journal) -> str:
        return str(sum((line.debit for line in obj.lines.all()), Decimal("0")))

    def get_total_credit(self, obj: Journal) -> str:
        return str(sum((line.credit for line in obj.lines.all()), Decimal("0")))


class JournalLineInputSerializer(serializers.Serializer):
    account_id = serializers.IntegerField()
    debit = serializers.DecimalField(max_digits=19, decimal_places=4, required=False, default=Decimal("0"))
    credit = serializers.DecimalField(max_digits=19, decimal_places=4, required=False, default=Decimal("0"))
    tax_rate_id = serializers.IntegerField(required=False, allow_null=True)
    description = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
    department = serializers.CharField(required=False, allow_blank=True, max_length=100, default="")
    line_number = serializers.IntegerField(required=False, allow_null=True, min_value=1)


class JournalWriteSerializer(serializers.Serializer):
    date = serializers.DateField()
    memo = serializers.CharField(required=False, allow_blank=True, max_length=255, default="")
    lines = JournalLineInputSerializer(many=True, allow_empty=True)

    def line_inputs(self) -> list[LineInput]:
        return [
            LineInput(
                account_id=line["account_id"],
                debit=line.get("debit") or Decimal("0"),
                credit=line.get("credit") or Decimal("0"),
                description=line.get("description") or "",
                department=line.get("department") or "",
                tax_rate_id=line.get("tax_rate_id"),
                line_number=line.get("line_number"),
            )
            for line in self.validated_data["lines"]
        ]


class AccountingPeriodSerializer(serializers.ModelSerializer):
    class Meta:
        model = AccountingPeriod
        fields = ["id", "name", "start_date", "end_date", "status", "closed_at", "locked_at"]
        read_only_fields = fields
