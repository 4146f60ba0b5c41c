from django.conf import settings
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from . import donors, hospitals, notifications
from .db import get_store
from .exceptions import InvalidInput, RecordNotFound, envelope
from .lifecycle import RequestLifecycle
from .serializers import (
    AvailabilitySerializer, CompleteSerializer, DonorActionSerializer, DonorSerializer,
    HospitalSerializer, NotificationReadSerializer, RequestCreateSerializer,
)


def ok(data=None, code=status.HTTP_200_OK):
    return Response(envelope(data), status=code)


def serialize_record(record):
    if not record:
        return None
    record = dict(record)
    record.pop('password', None)
    return record


def validated(serializer_class, data, **kwargs):
    serializer = serializer_class(data=data, **kwargs)
    serializer.is_valid(raise_exception=True)
    return serializer.validated_data


def engine_options():
    config = settings.HEMOLINK
    return {"cooldown_days": config['COOLDOWN_DAYS'], "radius_km": config['GPS_RADIUS_KM']}


def lifecycle():
    return RequestLifecycle(get_store(), cooldown_days=settings.HEMOLINK['COOLDOWN_DAYS'])


def require_param(request, name):
    value = request.query_params.get(name)
    if not value:
        raise InvalidInput(f"{name} is required")
    return value


# ---- Donors ----

class DonorRegisterView(APIView):
    def post(self, request):
        data = validated(DonorSerializer, request.data)
        donor = donors.register(get_store(), data)
        return ok(serialize_record(donor), status.HTTP_201_CREATED)


class DonorUpdateView(APIView):
    def patch(self, request):
        donor_id = request.data.get('id')
        if not donor_id:
            raise InvalidInput("Donor ID is required")
        fields = {k: v for k, v in request.data.items() if k != 'id'}
        data = validated(DonorSerializer, fields, partial=True)
        written = donors.update_profile(get_store(), donor_id, data)
        return ok(serialize_record({"id": donor_id, **written}))


class DonorAvailabilityView(APIView):
    def patch(self, request):
        if not request.data.get('id') or not request.data.get('status'):
            raise InvalidInput("Donor ID and status are required")
        data = validated(AvailabilitySerializer, request.data)
        result = donors.set_availability(get_store(), data['id'], data['status'],
                                         cooldown_days=settings.HEMOLINK['COOLDOWN_DAYS'])
        return ok(result)


class DonorDetailView(APIView):
    def get(self, request, donor_id):
        return ok(serialize_record(donors.get_donor(get_store(), donor_id)))


class DonorDonationsView(APIView):
    def get(self, request, donor_id):
        store = get_store()
        donors.get_donor(store, donor_id)
        return ok(donors.donations(store, donor_id))


class DonorRequestsView(APIView):
    """Donor dashboard: visible requests and cooldown state."""

    def get(self, request, donor_id):
        board = donors.dashboard(get_store(), donor_id, **engine_options())
        board['donor'] = serialize_record(board['donor'])
        return ok(board)


class DonorNotificationsView(APIView):
    def get(self, request, donor_id):
        return ok(notifications.for_donor(get_store(), donor_id))


# ---- Hospitals ----

class HospitalRegisterView(APIView):
    def post(self, request):
        data = validated(HospitalSerializer, request.data)
        hospital = hospitals.register(get_store(), data)
        return ok(serialize_record(hospital), status.HTTP_201_CREATED)


class HospitalDetailView(APIView):
    def get(self, request, hospital_id):
        return ok(serialize_record(hospitals.get_hospital(get_store(), hospital_id)))


class HospitalNotificationsView(APIView):
    def get(self, request, hospital_id):
        return ok(notifications.for_hospital(get_store(), hospital_id))


class HospitalNearbyDonorsView(APIView):
    def get(self, request, hospital_id):
        results = hospitals.nearby_donors_for_hospital(get_store(), hospital_id, **engine_options())
        for item in results:
            item['donor'] = serialize_record(item['donor'])
        return ok(results)


# ---- Requests ----

class RequestCreateView(APIView):
    def post(self, request):
        data = validated(RequestCreateSerializer, request.data)
        req = lifecycle().create(data['hospitalId'], data['bloodGroup'], data['units'], data['urgency'])
        return ok(req, status.HTTP_201_CREATED)


class RequestAcceptView(APIView):
    def patch(self, request):
        if not request.data.get('requestId') or not request.data.get('donorId'):
            raise InvalidInput("requestId and donorId are required")
        data = validated(DonorActionSerializer, request.data)
        req = lifecycle().accept(data['requestId'], data['donorId'], data['donorName'])
        return ok(req)


class RequestRejectView(APIView):
    def post(self, request):
        if not request.data.get('requestId') or not request.data.get('donorId'):
            raise InvalidInput("requestId and donorId are required")
        data = validated(DonorActionSerializer, request.data)
        created = lifecycle().reject(data['requestId'], data['donorId'], data['donorName'])
        return ok({"requestId": data['requestId'], "donorId": data['donorId'], "recorded": created})


class RequestCompleteView(APIView):
    def patch(self, request):
        data = validated(CompleteSerializer, request.data)
        req = lifecycle().approve(data['requestId'], data.get('donorId') or None,
                                  data.get('donationNumber') or None)
        return ok(req)


class RequestDeleteView(APIView):
    def delete(self, request):
        request_id = require_param(request, 'requestId')
        lifecycle().delete(request_id)
        return ok({"deleted": True})


class RequestsByHospitalView(APIView):
    def get(self, request):
        hospital_id = require_param(request, 'hospitalId')
        return ok(hospitals.requests_by_hospital(get_store(), hospital_id))


class RequestsForDonorView(APIView):
    def get(self, request):
        blood_group = require_param(request, 'bloodGroup')
        return ok(hospitals.pending_requests_for_group(get_store(), blood_group))


class EligibleDonorsView(APIView):
    def get(self, request, request_id):
        matches = hospitals.eligible_donors_for_request(get_store(), request_id, **engine_options())
        return ok([serialize_record(d) for d in matches])


# ---- Notifications / stats ----

class NotificationReadView(APIView):
    def patch(self, request):
        data = validated(NotificationReadSerializer, request.data)
        store = get_store()
        if data.get('id'):
            if not notifications.mark_read(store, data['id']):
                raise RecordNotFound("Notification not found")
            return ok({"updated": 1})
        count = notifications.mark_all_read(store, donor_id=data.get('donorId'),
                                            hospital_id=data.get('hospitalId'))
        return ok({"updated": count})


class StatsView(APIView):
    def get(self, request):
        return ok(hospitals.stats(get_store()))
