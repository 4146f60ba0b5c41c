from io import StringIO

from django.core.management import call_command
from django.test import SimpleTestCase, override_settings

from hemolink import db
from hemolink.cooldown import is_on_cooldown

from .utils import make_store


@override_settings(PASSWORD_HASHERS=['django.contrib.auth.hashers.MD5PasswordHasher'])
class SeedDemoTestCase(SimpleTestCase):

    def setUp(self):
        self.store = make_store()
        self.previous = db.set_store(self.store)

    def tearDown(self):
        db.set_store(self.previous)
        self.store.close()

    def test_seed(self):
        out = StringIO()
        call_command('seed_demo', donors=10, stdout=out)
        self.assertIn("Seeded 10 donors", out.getvalue())
        self.assertEqual(len(self.store.list('hospitals')), 5)

        donors = self.store.list('donors')
        self.assertEqual(len(donors), 10)
        resting = [d for d in donors if d['status'] == 'inactive']
        self.assertEqual(len(resting), 2)
        self.assertTrue(all(is_on_cooldown(d) for d in resting))
        self.assertEqual(len(self.store.backend.collections['donors']), 10)

    def test_seed_is_repeatable(self):
        call_command('seed_demo', donors=4, stdout=StringIO())
        call_command('seed_demo', donors=4, stdout=StringIO())
        self.assertEqual(len(self.store.list('donors')), 4)
        self.assertEqual(len(self.store.list('hospitals')), 5)
