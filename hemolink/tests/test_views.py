from unittest import mock

from django.test import SimpleTestCase, override_settings
from rest_framework.test import APIClient

from hemolink import db

from .utils import make_store

DONOR = {
    "name": "Asha Kumar",
    "email": "Asha@Example.com",
    "bloodGroup": "O+",
    "phone": "9876543210",
    "password": "secret-pass",
    "location": {"lat": 12.9716, "lng": 77.5946},
}

HOSPITAL = {
    "name": "City General",
    "license": "LIC-0001",
    "email": "admin@citygeneral.org",
    "contact": "080-1234",
    "password": "hospital-pass",
    "location": {"lat": 12.9720, "lng": 77.5950},
}


@override_settings(PASSWORD_HASHERS=['django.contrib.auth.hashers.MD5PasswordHasher'])
class ApiTestCase(SimpleTestCase):

    def setUp(self):
        self.store = make_store()
        self.previous = db.set_store(self.store)
        self.client = APIClient()

    def tearDown(self):
        db.set_store(self.previous)
        self.store.close()

    def assertEnvelopeError(self, response, status_code, message=None):
        self.assertEqual(response.status_code, status_code)
        self.assertFalse(response.data['success'])
        self.assertIsNone(response.data['data'])
        if message is not None:
            self.assertIn(message, response.data['error'])

    def register_donor(self, **overrides):
        response = self.client.post('/api/donors/register', {**DONOR, **overrides}, format='json')
        self.assertEqual(response.status_code, 201, response.data)
        return response.data['data']

    def register_hospital(self, **overrides):
        response = self.client.post('/api/hospitals/register', {**HOSPITAL, **overrides}, format='json')
        self.assertEqual(response.status_code, 201, response.data)
        return response.data['data']

    def create_request(self, hospital_id, blood_group='O+'):
        response = self.client.post('/api/requests/create', {
            "hospitalId": hospital_id, "bloodGroup": blood_group, "units": 2, "urgency": "critical",
        }, format='json')
        self.assertEqual(response.status_code, 201, response.data)
        return response.data['data']


class DonorApiTestCase(ApiTestCase):

    def test_register(self):
        response = self.client.post('/api/donors/register', DONOR, format='json')
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data['success'], True)
        self.assertIsNone(response.data['error'])
        donor = response.data['data']
        self.assertEqual(donor['email'], 'asha@example.com')
        self.assertEqual(donor['status'], 'active')
        self.assertEqual(donor['donationCount'], 0)
        self.assertNotIn('password', donor)
        self.assertTrue(self.store.get('donors', donor['id'])['password'].startswith('md5$'))

    def test_duplicate_email(self):
        self.register_donor()
        response = self.client.post('/api/donors/register', {**DONOR, "email": "asha@example.com"}, format='json')
        self.assertEnvelopeError(response, 400, "Email already exists")

    def test_invalid_blood_group(self):
        response = self.client.post('/api/donors/register', {**DONOR, "bloodGroup": "Z+"}, format='json')
        self.assertEnvelopeError(response, 400, "bloodGroup")

    def test_underage(self):
        response = self.client.post('/api/donors/register', {**DONOR, "dateOfBirth": "2015-01-01"}, format='json')
        self.assertEnvelopeError(response, 400, "Must be 18+")

    def test_update(self):
        donor = self.register_donor()
        response = self.client.patch('/api/donors/update', {
            "id": donor['id'], "phone": "111", "status": "inactive",
        }, format='json')
        self.assertEqual(response.status_code, 200, response.data)
        stored = self.store.get('donors', donor['id'])
        self.assertEqual(stored['phone'], '111')
        self.assertEqual(stored['status'], 'active')

    def test_update_requires_full_location(self):
        donor = self.register_donor()
        response = self.client.patch('/api/donors/update', {"id": donor['id'], "location": {"lat": 1.0}},
                                     format='json')
        self.assertEnvelopeError(response, 400, "lng required")
        self.assertEqual(self.store.get('donors', donor['id'])['location'], DONOR['location'])

        response = self.client.patch('/api/donors/update', {
            "id": donor['id'], "location": {"lat": 1.0, "lng": 2.0},
        }, format='json')
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(self.store.get('donors', donor['id'])['location'], {"lat": 1.0, "lng": 2.0})

    def test_update_requires_id(self):
        response = self.client.patch('/api/donors/update', {"phone": "111"}, format='json')
        self.assertEnvelopeError(response, 400, "Donor ID is required")

    def test_availability(self):
        donor = self.register_donor()
        response = self.client.patch('/api/donors/availability', {"id": donor['id'], "status": "inactive"},
                                     format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data'], {"id": donor['id'], "status": "inactive"})

        response = self.client.patch('/api/donors/availability', {"id": donor['id']}, format='json')
        self.assertEnvelopeError(response, 400, "Donor ID and status are required")

    def test_unknown_donor(self):
        self.assertEnvelopeError(self.client.get('/api/donors/nope'), 404, "Donor not found")
        self.assertEnvelopeError(self.client.get('/api/donors/nope/requests'), 404)

    def test_duplicate_hospital_license(self):
        self.register_hospital()
        response = self.client.post('/api/hospitals/register', {
            **HOSPITAL, "email": "other@citygeneral.org", "license": "lic-0001",
        }, format='json')
        self.assertEnvelopeError(response, 400, "Hospital already registered")

    def test_unknown_hospital(self):
        self.assertEnvelopeError(self.client.get('/api/hospitals/nope'), 404, "Hospital not found")
        self.assertEnvelopeError(self.client.get('/api/hospitals/nope/nearby-donors'), 404)


class RequestFlowTestCase(ApiTestCase):

    def setUp(self):
        super().setUp()
        self.hospital = self.register_hospital()
        self.donor = self.register_donor()
        self.second = self.register_donor(name="Ravi", email="ravi@example.com")

    def test_full_flow(self):
        req = self.create_request(self.hospital['id'])
        self.assertEqual(req['status'], 'pending')
        self.assertEqual(req['hospitalName'], 'City General')

        eligible = self.client.get(f"/api/requests/{req['id']}/eligible-donors").data['data']
        self.assertEqual({d['id'] for d in eligible}, {self.donor['id'], self.second['id']})
        self.assertTrue(all('password' not in d for d in eligible))

        response = self.client.patch('/api/requests/accept', {
            "requestId": req['id'], "donorId": self.donor['id'], "donorName": "Asha Kumar",
        }, format='json')
        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data['data']['status'], 'accepted')

        response = self.client.patch('/api/requests/accept', {
            "requestId": req['id'], "donorId": self.second['id'],
        }, format='json')
        self.assertEnvelopeError(response, 400, "already been accepted")

        response = self.client.patch('/api/requests/complete', {"requestId": req['id']}, format='json')
        self.assertEqual(response.status_code, 200, response.data)
        completed = response.data['data']
        self.assertEqual(completed['status'], 'completed')
        self.assertTrue(completed['donationNumber'].startswith('DON-'))

        donations = self.client.get(f"/api/donors/{self.donor['id']}/donations").data['data']
        self.assertEqual([d['donationNumber'] for d in donations], [completed['donationNumber']])

        board = self.client.get(f"/api/donors/{self.donor['id']}/requests").data['data']
        self.assertTrue(board['onCooldown'])
        self.assertEqual([r['id'] for r in board['requests']], [req['id']])
        self.assertNotIn('password', board['donor'])

        hospital_notes = self.client.get(f"/api/hospitals/{self.hospital['id']}/notifications").data['data']
        self.assertEqual([n['type'] for n in hospital_notes], ['donor_accepted'])
        donor_notes = self.client.get(f"/api/donors/{self.donor['id']}/notifications").data['data']
        self.assertEqual([n['type'] for n in donor_notes], ['donation_approved'])

        response = self.client.patch('/api/notifications/read', {"donorId": self.donor['id']}, format='json')
        self.assertEqual(response.data['data'], {"updated": 1})

        stats = self.client.get('/api/stats').data['data']
        self.assertEqual(stats['totalDonations'], 1)
        self.assertEqual(stats['livesImpacted'], 3)
        self.assertEqual(stats['activeDonors'], 1)

    def test_complete_pending_request(self):
        req = self.create_request(self.hospital['id'])
        response = self.client.patch('/api/requests/complete', {"requestId": req['id']}, format='json')
        self.assertEnvelopeError(response, 400)
        self.assertEqual(self.store.get('requests', req['id'])['status'], 'pending')

    def test_accept_requires_ids(self):
        response = self.client.patch('/api/requests/accept', {"requestId": "x"}, format='json')
        self.assertEnvelopeError(response, 400, "requestId and donorId are required")

    def test_create_for_unknown_hospital(self):
        response = self.client.post('/api/requests/create', {
            "hospitalId": "missing", "bloodGroup": "O+", "units": 1, "urgency": "low",
        }, format='json')
        self.assertEnvelopeError(response, 400, "Hospital not found")

    def test_create_validates_units(self):
        response = self.client.post('/api/requests/create', {
            "hospitalId": self.hospital['id'], "bloodGroup": "O+", "units": 0, "urgency": "low",
        }, format='json')
        self.assertEnvelopeError(response, 400, "units")

    def test_reject(self):
        req = self.create_request(self.hospital['id'])
        payload = {"requestId": req['id'], "donorId": self.donor['id']}
        first = self.client.post('/api/requests/reject', payload, format='json')
        second = self.client.post('/api/requests/reject', payload, format='json')
        self.assertTrue(first.data['data']['recorded'])
        self.assertFalse(second.data['data']['recorded'])

        board = self.client.get(f"/api/donors/{self.donor['id']}/requests").data['data']
        self.assertEqual(board['requests'], [])

    def test_by_hospital_and_delete(self):
        first = self.create_request(self.hospital['id'])
        second = self.create_request(self.hospital['id'], 'A+')
        listed = self.client.get('/api/requests/by-hospital', {"hospitalId": self.hospital['id']}).data['data']
        self.assertEqual({r['id'] for r in listed}, {first['id'], second['id']})

        self.assertEnvelopeError(self.client.delete('/api/requests/delete'), 400, "requestId is required")
        response = self.client.delete(f"/api/requests/delete?requestId={first['id']}")
        self.assertEqual(response.data['data'], {"deleted": True})
        self.assertEnvelopeError(self.client.delete(f"/api/requests/delete?requestId={first['id']}"), 404)

        listed = self.client.get('/api/requests/by-hospital', {"hospitalId": self.hospital['id']}).data['data']
        self.assertEqual([r['id'] for r in listed], [second['id']])

    def test_for_donor(self):
        self.create_request(self.hospital['id'], 'A+')
        matching = self.create_request(self.hospital['id'], 'O+')
        listed = self.client.get('/api/requests/for-donor', {"bloodGroup": "O+"}).data['data']
        self.assertEqual([r['id'] for r in listed], [matching['id']])
        self.assertEnvelopeError(self.client.get('/api/requests/for-donor'), 400, "bloodGroup is required")

    def test_nearby_donors(self):
        results = self.client.get(f"/api/hospitals/{self.hospital['id']}/nearby-donors").data['data']
        self.assertEqual(len(results), 2)
        self.assertTrue(all('password' not in item['donor'] for item in results))

    def test_notification_read_validation(self):
        response = self.client.patch('/api/notifications/read', {}, format='json')
        self.assertEnvelopeError(response, 400, "id, donorId or hospitalId is required")
        response = self.client.patch('/api/notifications/read', {"id": "missing"}, format='json')
        self.assertEnvelopeError(response, 404, "Notification not found")


class UnexpectedErrorTestCase(ApiTestCase):

    def test_unhandled_exception_is_enveloped(self):
        with mock.patch('hemolink.hospitals.stats', side_effect=RuntimeError('boom')):
            with self.assertLogs('hemolink.exceptions', 'ERROR'):
                response = self.client.get('/api/stats')
        self.assertEnvelopeError(response, 500, "Internal server error")
