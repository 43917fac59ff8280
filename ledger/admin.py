from django.contrib import admin

from .models import Account, AccountingPeriod, Journal, JournalLine, TaxRate, Tenant


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ("name", "currency", "owner_user", "created_at")
    search_fields = ("name",)


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "type", "tenant", "is_active")
    list_filter = ("type", "is_active")
    search_fields = ("code", "name")
    ordering = ("tenant", "code")


@admin.register(TaxRate)
class TaxRateAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "display_rate", "category", "applies_from", "applies_to", "is_active")
    list_filter = ("category", "is_active")
    search_fields = ("name",)

    @admin.display(description="Rate")
    def display_rate(self, obj):
        return f"{obj.rate}%"


@admin.register(AccountingPeriod)
class AccountingPeriodAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "start_date", "end_date", "status")
    list_filter = ("status",)


class JournalLineInline(admin.TabularInline):
    model = JournalLine
    extra = 0
    can_delete = False
    readonly_fields = ("line_number", "account", "debit", "credit", "tax_rate", "description", "department")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Journal)
class JournalAdmin(admin.ModelAdmin):
    list_display = ("id", "date", "memo", "tenant", "source_type", "source_id", "is_approved")
    list_filter = ("source_type", "is_approved")
    search_fields = ("memo",)
    date_hierarchy = "date"
    inlines = [JournalLineInline]
    readonly_fields = ("source_type", "source_id", "source_event", "approved_at", "approved_by", "created_by")
