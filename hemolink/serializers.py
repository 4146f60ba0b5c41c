from rest_framework import serializers

from .eligibility import ANY_GROUP, BLOOD_GROUPS
from .lifecycle import URGENCY_LEVELS
from .timeutils import age_from_dob


class LocationSerializer(serializers.Serializer):
    lat = serializers.FloatField(min_value=-90, max_value=90)
    lng = serializers.FloatField(min_value=-180, max_value=180)


class DonorSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    email = serializers.EmailField()
    bloodGroup = serializers.ChoiceField(choices=BLOOD_GROUPS)
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True)
    password = serializers.CharField(required=False, write_only=True)
    age = serializers.IntegerField(required=False, min_value=18, max_value=100)
    weight = serializers.FloatField(required=False, min_value=0)
    dateOfBirth = serializers.DateField(required=False)
    location = LocationSerializer(required=False)
    medical = serializers.ListField(child=serializers.CharField(), required=False)
    lifestyle = serializers.DictField(child=serializers.CharField(), required=False)
    lastDonation = serializers.CharField(required=False, allow_null=True, allow_blank=True)

    def validate_location(self, value):
        # nested fields inherit partial=True on profile edits
        missing = [key for key in ('lat', 'lng') if value.get(key) is None]
        if missing:
            raise serializers.ValidationError(f"{' and '.join(missing)} required")
        return value

    def validate_dateOfBirth(self, value):
        if age_from_dob(value.isoformat()) < 18:
            raise serializers.ValidationError("Must be 18+ to register")
        return value.isoformat()


class AvailabilitySerializer(serializers.Serializer):
    id = serializers.CharField()
    status = serializers.ChoiceField(choices=['active', 'inactive'])


class HospitalSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    license = serializers.CharField(max_length=100)
    email = serializers.EmailField()
    contact = serializers.CharField(max_length=30)
    location = LocationSerializer()
    establishment = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    emergencyHotline = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    password = serializers.CharField(required=False, write_only=True)


class RequestCreateSerializer(serializers.Serializer):
    hospitalId = serializers.CharField()
    bloodGroup = serializers.ChoiceField(choices=BLOOD_GROUPS + [ANY_GROUP])
    units = serializers.IntegerField(min_value=1)
    urgency = serializers.ChoiceField(choices=URGENCY_LEVELS)


class DonorActionSerializer(serializers.Serializer):
    requestId = serializers.CharField()
    donorId = serializers.CharField()
    donorName = serializers.CharField(required=False, allow_blank=True, default='')


class CompleteSerializer(serializers.Serializer):
    requestId = serializers.CharField()
    donorId = serializers.CharField(required=False, allow_blank=True)
    donationNumber = serializers.CharField(required=False, allow_blank=True)


class NotificationReadSerializer(serializers.Serializer):
    id = serializers.CharField(required=False)
    donorId = serializers.CharField(required=False)
    hospitalId = serializers.CharField(required=False)

    def validate(self, attrs):
        if not any(attrs.get(k) for k in ('id', 'donorId', 'hospitalId')):
            raise serializers.ValidationError("id, donorId or hospitalId is required")
        return attrs
