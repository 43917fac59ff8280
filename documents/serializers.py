from rest_framework import serializers


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=12)
    payment_date = serializers.DateField(required=False, allow_null=True)

    def validate_status(self, value):
        return value.strip().upper()


def transition_payload(document_type: str, result) -> dict:
    return {
        "id": result.document.pk,
        "document_type": document_type,
        "old_status": result.old_status,
        "status": result.new_status,
        "changed": result.changed,
        "journal_id": result.journal.pk if result.journal else None,
        "warnings": result.warnings,
    }
