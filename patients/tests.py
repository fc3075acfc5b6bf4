# patients/tests.py
from django.test import TestCase

from .models import Patient


class PatientModelTests(TestCase):
    """Test cases for Patient model"""

    def setUp(self):
        self.patient = Patient.objects.create(
            first_name='John',
            last_name='Doe',
            email='john.doe@example.com',
            contact_number='09123456789',
        )

    def test_full_name_and_str(self):
        self.assertEqual(self.patient.full_name, 'John Doe')
        self.assertEqual(str(self.patient), 'Doe, John')

    def test_ordering_by_last_name(self):
        Patient.objects.create(first_name='Ana', last_name='Cruz')
        self.assertEqual([p.last_name for p in Patient.objects.all()], ['Cruz', 'Doe'])
