"""
Patient endpoints.

``/api/v1/patients`` lists and creates patients, ``/api/v1/patients/<id>``
fetches one.  Both sit behind the bearer token stage.  Every store call gets
a fresh deadline of ``config.request_timeout`` seconds; store errors are
turned into status codes by ``clinic.exceptions.api_exception_handler``.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.exceptions import ParseError
from rest_framework.response import Response
from rest_framework.views import APIView

from ..exceptions import PayloadTooLarge, ValidationError
from ..serializers.patient import NewPatientSerializer, PatientSerializer
from ..store import Deadline

INT32_MIN, INT32_MAX = -(2 ** 31), 2 ** 31 - 1


class PatientAPIView(APIView):
    config = None
    store = None

    def deadline(self) -> Deadline:
        return Deadline.after(self.config.request_timeout)


class PatientListView(PatientAPIView):

    def get(self, request):
        patients = self.store.fetch_all_patients(self.deadline())
        return Response(PatientSerializer(patients, many=True).data)

    def post(self, request):
        # Size check happens before the body is touched
        length = _content_length(request)
        if length > self.config.max_post_size:
            raise PayloadTooLarge()
        if length == 0:
            raise ParseError('empty request body')

        data = NewPatientSerializer(data=request.data)
        data.is_valid(raise_exception=True)
        patient = self.store.create_patient(self.deadline(), data.validated_data)

        location = _location(request, patient.id)
        return Response(
            PatientSerializer(patient).data,
            status=status.HTTP_201_CREATED,
            headers={'Location': location},
        )


class PatientDetailView(PatientAPIView):

    def get(self, request, patient_id):
        patient = self.store.fetch_patient(self.deadline(), _parse_id(patient_id))
        return Response(PatientSerializer(patient).data)


def _content_length(request) -> int:
    raw = request.META.get('CONTENT_LENGTH') or '0'
    try:
        length = int(raw)
    except ValueError:
        raise ValidationError('invalid Content-Length') from None
    if length < 0:
        raise ValidationError('invalid Content-Length')
    return length


def _parse_id(raw: str) -> int:
    """Accept base-10 integers that fit a signed 32-bit column."""
    value = raw[1:] if raw[:1] in '+-' else raw
    if not value.isdigit() or not value.isascii():
        raise ValidationError('patient id must be an integer')
    patient_id = int(raw)
    if not INT32_MIN <= patient_id <= INT32_MAX:
        raise ValidationError('patient id out of range')
    return patient_id


def _location(request, patient_id: int) -> str:
    """URL of a new patient as addressed by the client.

    Uses the Host header as sent, without the ``ALLOWED_HOSTS`` check of
    ``request.get_host()``: the row is already stored at this point.
    """
    host = request.META.get('HTTP_HOST')
    if not host:
        host = request.META['SERVER_NAME']
        port = str(request.META.get('SERVER_PORT', ''))
        if port and port != ('443' if request.is_secure() else '80'):
            host = f'{host}:{port}'
    return f'{request.scheme}://{host}{request.path}/{patient_id}'
