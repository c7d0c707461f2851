from django.contrib import admin

from reservations.models import Coupon, NotificationJob, Reservation, Resource


class ReservationInline(admin.TabularInline):
    model = Reservation
    extra = 0
    fields = ["user", "slot_start", "slot_end", "status", "price_cents"]
    readonly_fields = fields
    can_delete = False


@admin.register(Resource)
class ResourceAdmin(admin.ModelAdmin):
    list_display = ["name", "lead_time_min", "created_at"]
    search_fields = ["name"]
    inlines = [ReservationInline]


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ["code", "amount_off_cents", "percent_off", "valid_from", "valid_to"]
    search_fields = ["code"]


@admin.register(Reservation)
class ReservationAdmin(admin.ModelAdmin):
    list_display = ["resource", "user", "slot_start", "slot_end", "status", "price_cents"]
    list_filter = ["status", "resource"]
    search_fields = ["user__email", "resource__name"]


@admin.register(NotificationJob)
class NotificationJobAdmin(admin.ModelAdmin):
    list_display = ["kind", "topic", "status", "run_at", "attempts"]
    list_filter = ["status", "kind"]
