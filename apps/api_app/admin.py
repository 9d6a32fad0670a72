from django.contrib import admin
from .models import Parent, Child, LocationPoint, GeoFence


@admin.register(Parent)
class ParentAdmin(admin.ModelAdmin):
    list_display = ('email', 'first_name', 'last_name', 'external_auth_id', 'status', 'updated_at')
    search_fields = ('email', 'external_auth_id', 'first_name', 'last_name')
    list_filter = ('status', 'is_verified')


@admin.register(Child)
class ChildAdmin(admin.ModelAdmin):
    list_display = ('name', 'parent', 'family_code', 'is_online', 'last_seen')
    search_fields = ('name', 'family_code', 'parent__email')
    list_filter = ('is_online',)


@admin.register(LocationPoint)
class LocationPointAdmin(admin.ModelAdmin):
    list_display = ('child', 'latitude', 'longitude', 'timestamp')
    list_filter = ('child',)
    date_hierarchy = 'timestamp'


@admin.register(GeoFence)
class GeoFenceAdmin(admin.ModelAdmin):
    list_display = ('name', 'parent', 'latitude', 'longitude', 'radius', 'is_active')
    search_fields = ('name', 'parent__email')
    list_filter = ('is_active',)
