from django.core.validators import MaxValueValidator, MinLengthValidator, MinValueValidator, RegexValidator
from django.db import models

family_code_validator = RegexValidator(
    regex=r'^[A-Z0-9]{6,10}$',
    message="Family code must be alphanumeric and 6-10 characters long",
)

phone_number_validator = RegexValidator(
    regex=r'^\+?[1-9]\d{1,14}$',
    message="Phone number must be valid and in E.164 format",
)


class Parent(models.Model):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('inactive', 'Inactive'),
        ('banned', 'Banned'),
    ]
    ROLE = 'parent'

    # User id issued by the external identity provider
    external_auth_id = models.CharField(max_length=255, unique=True)
    email = models.EmailField(unique=True)
    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)
    phone_number = models.CharField(max_length=20, blank=True, null=True, validators=[phone_number_validator])
    profile_picture = models.URLField(blank=True, default='')
    family_codes = models.JSONField(default=list, blank=True, help_text="Family codes of the children this parent follows.")
    is_verified = models.BooleanField(default=False)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='active')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def add_family_code(self, family_code):
        if family_code not in self.family_codes:
            self.family_codes = [*self.family_codes, family_code]
            self.save(update_fields=['family_codes', 'updated_at'])

    class Meta:
        ordering = ['-created_at']


class Child(models.Model):
    parent = models.ForeignKey(Parent, on_delete=models.CASCADE, related_name='children')
    family_code = models.CharField(max_length=10, unique=True, validators=[family_code_validator])
    name = models.CharField(max_length=100, validators=[MinLengthValidator(2)])
    age = models.PositiveSmallIntegerField(validators=[MaxValueValidator(18)])
    profile_picture = models.URLField(blank=True, default='')
    emergency_contacts = models.JSONField(default=list, blank=True)
    is_online = models.BooleanField(default=False)
    last_seen = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        ordering = ['-created_at']


class LocationPoint(models.Model):
    child = models.ForeignKey(Child, on_delete=models.CASCADE, related_name='location_points')
    latitude = models.FloatField(validators=[MinValueValidator(-90.0), MaxValueValidator(90.0)])
    longitude = models.FloatField(validators=[MinValueValidator(-180.0), MaxValueValidator(180.0)])
    timestamp = models.DateTimeField()

    def __str__(self):
        return f"{self.child.name} at {self.timestamp}"

    class Meta:
        ordering = ['-timestamp']


class GeoFence(models.Model):
    parent = models.ForeignKey(Parent, on_delete=models.CASCADE, related_name='geofences')
    name = models.CharField(max_length=100, validators=[MinLengthValidator(2)])  # e.g., "Home Zone"
    latitude = models.FloatField(validators=[MinValueValidator(-90.0), MaxValueValidator(90.0)])  # Center
    longitude = models.FloatField(validators=[MinValueValidator(-180.0), MaxValueValidator(180.0)])  # Center
    radius = models.FloatField(default=100, validators=[MinValueValidator(0.0)])  # In meters
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        ordering = ['created_at']
