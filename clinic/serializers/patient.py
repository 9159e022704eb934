from rest_framework import serializers

from ..models import Patient

PATIENT_FIELDS = ['first_name', 'last_name', 'address', 'phone', 'email']


class TextField(serializers.CharField):
    """Optional JSON string.  ``null`` or a missing key means empty."""

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_blank', True)
        kwargs.setdefault('allow_null', True)
        kwargs.setdefault('trim_whitespace', False)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        if not isinstance(data, str):
            self.fail('invalid')
        return super().to_internal_value(data)


class NewPatientSerializer(serializers.Serializer):
    first_name = TextField()
    last_name = TextField()
    address = TextField()
    phone = TextField()
    email = TextField()

    def validate(self, attrs):
        return {name: attrs.get(name) or '' for name in PATIENT_FIELDS}


class PatientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Patient
        fields = ['id', *PATIENT_FIELDS, 'created_at']
        read_only_fields = fields
