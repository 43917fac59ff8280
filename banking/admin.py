from django.contrib import admin

from .models import BankRow, BankStatement


class BankRowInline(admin.TabularInline):
    model = BankRow
    extra = 0
    can_delete = False
    fields = ("txn_date", "description", "amount", "direction", "matched", "matched_target_type", "matched_target_id")
    readonly_fields = fields


@admin.register(BankStatement)
class BankStatementAdmin(admin.ModelAdmin):
    list_display = ("id", "tenant", "account_name", "file_name", "row_count", "matched_count", "created_at")
    search_fields = ("account_name", "file_name")
    readonly_fields = ("row_count", "matched_count", "created_by", "created_at")
    inlines = [BankRowInline]


@admin.register(BankRow)
class BankRowAdmin(admin.ModelAdmin):
    list_display = ("txn_date", "tenant", "description", "amount", "direction", "matched")
    list_filter = ("direction", "matched")
    search_fields = ("description",)
    readonly_fields = ("hash", "matched", "matched_target_type", "matched_target_id", "matched_at", "journal")
