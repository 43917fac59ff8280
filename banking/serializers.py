from rest_framework import serializers

from .bank_import_services import ColumnMapping
from .models import BankRow, BankStatement


class BankStatementSerializer(serializers.ModelSerializer):
    class Meta:
        model = BankStatement
        fields = [
            "id",
            "account_name",
            "statement_date",
            "file_name",
            "row_count",
            "matched_count",
            "created_at",
        ]


class BankRowSerializer(serializers.ModelSerializer):
    class Meta:
        model = BankRow
        fields = [
            "id",
            "statement_id",
            "txn_date",
            "description",
            "amount",
            "direction",
            "matched",
            "matched_target_type",
            "matched_target_id",
            "matched_at",
            "journal_id",
        ]


class ColumnField(serializers.CharField):
    """A zero-based column index or a header name."""

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        return int(value) if value.isdigit() else value


class ImportRequestSerializer(serializers.Serializer):
    file = serializers.FileField()
    account_name = serializers.CharField(max_length=255)
    date_column = ColumnField(default="0")
    description_column = ColumnField(default="1")
    amount_column = ColumnField(default="2")
    type_column = ColumnField(required=False, allow_blank=True, default="")
    has_header = serializers.BooleanField(default=False)

    def mapping(self) -> ColumnMapping:
        data = self.validated_data
        return ColumnMapping(
            date=data["date_column"],
            description=data["description_column"],
            amount=data["amount_column"],
            direction=data.get("type_column") or None,
        )


class ConfirmMatchSerializer(serializers.Serializer):
    bank_row_id = serializers.IntegerField(min_value=1)
    target_type = serializers.ChoiceField(choices=BankRow.TargetType.choices)
    target_id = serializers.IntegerField(min_value=1)
