from django.urls import path

from .views import (
    DonorRegisterView, DonorUpdateView, DonorAvailabilityView, DonorDetailView,
    DonorDonationsView, DonorRequestsView, DonorNotificationsView,
    HospitalRegisterView, HospitalDetailView, HospitalNotificationsView, HospitalNearbyDonorsView,
    RequestCreateView, RequestAcceptView, RequestRejectView, RequestCompleteView,
    RequestDeleteView, RequestsByHospitalView, RequestsForDonorView, EligibleDonorsView,
    NotificationReadView, StatsView,
)

urlpatterns = [
    # Donors
    path('donors/register', DonorRegisterView.as_view(), name='donor-register'),
    path('donors/update', DonorUpdateView.as_view(), name='donor-update'),
    path('donors/availability', DonorAvailabilityView.as_view(), name='donor-availability'),
    path('donors/<str:donor_id>', DonorDetailView.as_view(), name='donor-detail'),
    path('donors/<str:donor_id>/donations', DonorDonationsView.as_view(), name='donor-donations'),
    path('donors/<str:donor_id>/requests', DonorRequestsView.as_view(), name='donor-requests'),
    path('donors/<str:donor_id>/notifications', DonorNotificationsView.as_view(), name='donor-notifications'),

    # Hospitals
    path('hospitals/register', HospitalRegisterView.as_view(), name='hospital-register'),
    path('hospitals/<str:hospital_id>', HospitalDetailView.as_view(), name='hospital-detail'),
    path('hospitals/<str:hospital_id>/notifications', HospitalNotificationsView.as_view(), name='hospital-notifications'),
    path('hospitals/<str:hospital_id>/nearby-donors', HospitalNearbyDonorsView.as_view(), name='hospital-nearby-donors'),

    # Requests
    path('requests/create', RequestCreateView.as_view(), name='request-create'),
    path('requests/accept', RequestAcceptView.as_view(), name='request-accept'),
    path('requests/reject', RequestRejectView.as_view(), name='request-reject'),
    path('requests/complete', RequestCompleteView.as_view(), name='request-complete'),
    path('requests/delete', RequestDeleteView.as_view(), name='request-delete'),
    path('requests/by-hospital', RequestsByHospitalView.as_view(), name='requests-by-hospital'),
    path('requests/for-donor', RequestsForDonorView.as_view(), name='requests-for-donor'),
    path('requests/<str:request_id>/eligible-donors', EligibleDonorsView.as_view(), name='request-eligible-donors'),

    # Notifications / stats
    path('notifications/read', NotificationReadView.as_view(), name='notifications-read'),
    path('stats', StatsView.as_view(), name='stats'),
]
