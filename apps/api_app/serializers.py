from django.conf import settings
from django.core.validators import MinValueValidator, MaxValueValidator
from rest_framework import serializers

from .models import Parent, Child, GeoFence, LocationPoint, family_code_validator, phone_number_validator


class ParentSerializer(serializers.ModelSerializer):
    clerkId = serializers.CharField(source='external_auth_id', max_length=255, help_text="User id issued by the identity provider.")
    firstName = serializers.CharField(source='first_name', max_length=100, required=False, allow_blank=True)
    lastName = serializers.CharField(source='last_name', max_length=100, required=False, allow_blank=True)
    phoneNumber = serializers.CharField(
        source='phone_number', max_length=20, required=False, allow_null=True,
        validators=[phone_number_validator]
    )
    profilePicture = serializers.URLField(source='profile_picture', required=False, allow_blank=True)
    familyCodes = serializers.ListField(
        source='family_codes',
        child=serializers.CharField(validators=[family_code_validator]),
        required=False,
        help_text="Family codes of the children this parent follows."
    )
    isVerified = serializers.BooleanField(source='is_verified', read_only=True)
    role = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Parent
        fields = [
            'id', 'clerkId', 'email', 'firstName', 'lastName', 'phoneNumber',
            'profilePicture', 'familyCodes', 'isVerified', 'role', 'status',
            'createdAt', 'updatedAt',
        ]
        read_only_fields = ('id', 'status')

    def get_role(self, obj) -> str:
        return Parent.ROLE


class EmergencyContactSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=100)
    phoneNumber = serializers.CharField(max_length=20, validators=[phone_number_validator])
    relationship = serializers.CharField(max_length=50)


class ChildSerializer(serializers.ModelSerializer):
    parentId = serializers.IntegerField(source='parent_id', read_only=True)
    familyCode = serializers.CharField(source='family_code', read_only=True)
    profilePicture = serializers.URLField(source='profile_picture', read_only=True)
    emergencyContacts = serializers.JSONField(source='emergency_contacts', read_only=True)
    isOnline = serializers.BooleanField(source='is_online', read_only=True)
    lastSeen = serializers.DateTimeField(source='last_seen', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Child
        fields = [
            'id', 'parentId', 'familyCode', 'name', 'age', 'profilePicture',
            'emergencyContacts', 'isOnline', 'lastSeen', 'createdAt', 'updatedAt',
        ]
        read_only_fields = fields


class ChildCreateSerializer(serializers.Serializer):
    parentId = serializers.IntegerField(help_text="ID of the parent the child belongs to.")
    name = serializers.CharField(min_length=2, max_length=100)
    age = serializers.IntegerField(min_value=0, max_value=18)
    familyCode = serializers.CharField(
        required=False, validators=[family_code_validator],
        help_text="Optional; generated by the server when omitted."
    )
    profilePicture = serializers.URLField(required=False, allow_blank=True, default='')
    emergencyContacts = EmergencyContactSerializer(many=True, required=False, default=list)


class ChildAuthenticateSerializer(serializers.Serializer):
    familyCode = serializers.CharField(max_length=10, help_text="Family code shared by the parent.")


class LocationPointSerializer(serializers.ModelSerializer):
    class Meta:
        model = LocationPoint
        fields = ['id', 'latitude', 'longitude', 'timestamp']
        read_only_fields = fields


class GeoFenceSerializer(serializers.ModelSerializer):
    parentId = serializers.IntegerField(source='parent_id', read_only=True)
    isActive = serializers.BooleanField(source='is_active', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = GeoFence
        fields = ['id', 'parentId', 'name', 'latitude', 'longitude', 'radius', 'isActive', 'createdAt', 'updatedAt']
        read_only_fields = fields


class GeoFenceCreateSerializer(serializers.Serializer):
    parentId = serializers.IntegerField(help_text="ID of the parent who owns the geofence.")
    name = serializers.CharField(min_length=2, max_length=100, help_text="Name of the geofence (e.g., 'Home').")
    latitude = serializers.FloatField(
        validators=[MinValueValidator(-90.0), MaxValueValidator(90.0)],
        help_text="Latitude of the geofence center."
    )
    longitude = serializers.FloatField(
        validators=[MinValueValidator(-180.0), MaxValueValidator(180.0)],
        help_text="Longitude of the geofence center."
    )
    radius = serializers.FloatField(
        required=False,
        default=settings.DEFAULT_GEOFENCE_RADIUS_METERS,
        validators=[MinValueValidator(0.0)],
        help_text="Radius of the geofence in meters."
    )
