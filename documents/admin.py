from django.contrib import admin

from .models import Bill, Customer, ExpenseClaim, ExpenseClaimItem, Invoice, Vendor


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "email")
    search_fields = ("name",)


@admin.register(Vendor)
class VendorAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "email")
    search_fields = ("name",)


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("invoice_number", "customer", "issue_date", "total_amount", "amount_paid", "status")
    list_filter = ("status",)
    search_fields = ("invoice_number", "customer__name")
    readonly_fields = ("status", "amount_paid", "payment_date")


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = ("bill_number", "vendor", "bill_date", "total_amount", "amount_paid", "status")
    list_filter = ("status",)
    search_fields = ("bill_number", "vendor__name")
    readonly_fields = ("status", "amount_paid", "payment_date")


class ExpenseClaimItemInline(admin.TabularInline):
    model = ExpenseClaimItem
    extra = 0


@admin.register(ExpenseClaim)
class ExpenseClaimAdmin(admin.ModelAdmin):
    list_display = ("title", "employee", "status", "reimbursed_on")
    list_filter = ("status",)
    inlines = [ExpenseClaimItemInline]
    readonly_fields = ("status", "reimbursed_on")
