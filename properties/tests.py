# ===== PROPERTIES APP TEST SUITE =====
"""
Test suite for properties app functionality
File: properties/tests.py

Test Coverage:
- Owner, Tenant and Property model operations
- Business identifiers and URL slugs
- Location helpers used for geocoding
- API endpoints scoped to the agency of the user
- Serializer validation (phone, spouse, owner agency, offer type)
- Protected deletes and the geocode / statistics actions
- Tenant assignments: validation, date filter and termination
"""

from datetime import date
from decimal import Decimal
from unittest.mock import patch, Mock

from django.contrib.admin.sites import AdminSite
from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from agencies.models import Agency, AgencyUser, PlatformAdmin

from .admin import PropertyAdmin
from .models import Owner, Tenant, Property, PropertyTenantAssignment

User = get_user_model()


# =============================================================================
# MODEL TESTS
# =============================================================================

class OwnerTenantModelTest(TestCase):
    """Test person records and their business identifiers"""

    def setUp(self):
        self.agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')

    def test_owner_business_id(self):
        owner = Owner.objects.create(
            agency=self.agency, first_name='Awa', last_name='Koné', phone='0707070707'
        )
        self.assertTrue(owner.business_id.startswith('PROP-'))
        self.assertEqual(str(owner), 'Awa Koné')
        self.assertTrue(owner.get_url_slug().startswith(owner.business_id))
        self.assertTrue(owner.get_url_slug().endswith('awa-kone'))

    def test_tenant_business_id_sequence(self):
        first = Tenant.objects.create(agency=self.agency, first_name='Ali', last_name='Touré', phone='0505050505')
        second = Tenant.objects.create(agency=self.agency, first_name='Fanta', last_name='Cissé', phone='0101010101')
        self.assertTrue(first.business_id.startswith('LOC-'))
        self.assertTrue(first.business_id.endswith('00001'))
        self.assertTrue(second.business_id.endswith('00002'))

    def test_tenant_defaults(self):
        tenant = Tenant.objects.create(agency=self.agency, first_name='Ali', last_name='Touré', phone='0505050505')
        self.assertEqual(tenant.payment_status, 'bon')
        self.assertEqual(tenant.marital_status, 'celibataire')
        self.assertEqual(tenant.children_count, 0)


class PropertyModelTest(TestCase):
    """Test Property location helpers"""

    def setUp(self):
        self.agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')
        self.owner = Owner.objects.create(
            agency=self.agency, first_name='Awa', last_name='Koné', phone='0707070707'
        )
        self.property = Property.objects.create(
            agency=self.agency,
            owner=self.owner,
            title='Villa Cocody',
            location={'commune': 'Cocody', 'quartier': 'Riviera 3', 'address_line': 'Rue des Jardins'},
            details={'type': 'villa'},
            monthly_rent=Decimal('150000'),
        )

    def test_business_id(self):
        self.assertTrue(self.property.business_id.startswith('BIEN-'))
        self.assertEqual(str(self.property), 'Villa Cocody')

    def test_full_address(self):
        self.assertEqual(self.property.get_full_address(), 'Rue des Jardins Cocody')

    def test_full_address_empty(self):
        self.property.location = {}
        self.assertEqual(self.property.get_full_address(), '')

    def test_geocoding_address(self):
        self.assertEqual(self.property.get_geocoding_address(), 'Rue des Jardins, Riviera 3, Cocody')

    def test_property_type(self):
        self.assertEqual(self.property.get_property_type(), 'villa')

    def test_coordinates(self):
        self.assertFalse(self.property.has_coordinates)
        self.assertIsNone(self.property.get_coordinates())

        self.property.location['coordinates'] = {'lat': 5.35, 'lng': -3.98}
        self.assertTrue(self.property.has_coordinates)
        self.assertEqual(self.property.get_coordinates(), (5.35, -3.98))


# =============================================================================
# ADMIN TESTS
# =============================================================================

class PropertyAdminTest(TestCase):

    def setUp(self):
        self.admin = PropertyAdmin(Property, AdminSite())
        agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')
        owner = Owner.objects.create(agency=agency, first_name='Awa', last_name='Koné', phone='0707070707')
        self.property = Property.objects.create(agency=agency, owner=owner, title='Studio')

    def test_rent_display(self):
        self.assertEqual(self.admin.rent_display(self.property), '-')
        self.property.monthly_rent = Decimal('150000')
        self.assertIn('F CFA', self.admin.rent_display(self.property))

    def test_has_coordinates_display(self):
        self.assertIn('✗', self.admin.has_coordinates(self.property))


# =============================================================================
# API TESTS
# =============================================================================

class PropertiesAPITestCase(APITestCase):
    """Base class: two agencies, one member each"""

    def setUp(self):
        self.agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')
        self.other_agency = Agency.objects.create(name='Autre Agence', commercial_register='CI-ABJ-2')

        self.user = User.objects.create_user(username='agent', password='pass12345')
        AgencyUser.objects.create(user=self.user, agency=self.agency, role='agent')
        self.other_user = User.objects.create_user(username='other', password='pass12345')
        AgencyUser.objects.create(user=self.other_user, agency=self.other_agency, role='agent')

        self.owner = Owner.objects.create(
            agency=self.agency, first_name='Awa', last_name='Koné', phone='0707070707'
        )
        self.other_owner = Owner.objects.create(
            agency=self.other_agency, first_name='Jean', last_name='Kouassi', phone='0708080808'
        )
        self.property = Property.objects.create(
            agency=self.agency,
            owner=self.owner,
            title='Villa Cocody',
            location={'commune': 'Cocody', 'quartier': 'Riviera 3'},
            details={'type': 'villa'},
            standing='haut',
            monthly_rent=Decimal('250000'),
        )

        self.client.force_authenticate(user=self.user)


class OwnerAPITest(PropertiesAPITestCase):

    def test_list_owners_scoped_to_agency(self):
        response = self.client.get(reverse('owner-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['full_name'], 'Awa Koné')
        self.assertEqual(response.data['results'][0]['property_count'], 1)

    def test_other_agency_owner_not_found(self):
        response = self.client.get(reverse('owner-detail', args=[self.other_owner.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_create_owner(self):
        data = {
            'first_name': 'Mariam',
            'last_name': 'Ouattara',
            'phone': '+225 07 11 22 33 44',
            'property_title': 'acd',
            'agency': self.other_agency.pk,
        }
        response = self.client.post(reverse('owner-list'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        owner = Owner.objects.get(pk=response.data['id'])
        self.assertEqual(owner.agency, self.agency)
        self.assertEqual(owner.created_by, self.user)
        self.assertTrue(response.data['business_id'].startswith('PROP-'))

    def test_create_owner_requires_phone(self):
        response = self.client.post(
            reverse('owner-list'), {'first_name': 'Mariam', 'last_name': 'Ouattara', 'phone': ''}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', response.data)

    def test_married_owner_requires_spouse(self):
        data = {
            'first_name': 'Mariam',
            'last_name': 'Ouattara',
            'phone': '0711223344',
            'marital_status': 'marie',
        }
        response = self.client.post(reverse('owner-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('spouse_name', response.data)

        data['spouse_name'] = 'Ibrahim Ouattara'
        response = self.client.post(reverse('owner-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_owner_properties(self):
        response = self.client.get(reverse('owner-properties', args=[self.owner.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['results'][0]['title'], 'Villa Cocody')

    def test_delete_owner_with_properties_conflicts(self):
        response = self.client.delete(reverse('owner-detail', args=[self.owner.pk]))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(response.data['success'])
        self.assertTrue(Owner.objects.filter(pk=self.owner.pk).exists())

    def test_search_owners(self):
        Owner.objects.create(agency=self.agency, first_name='Paul', last_name='Yao', phone='0709090909')
        response = self.client.get(reverse('owner-list'), {'search': 'Yao'})
        self.assertEqual(response.data['count'], 1)


class TenantAPITest(PropertiesAPITestCase):

    def test_create_and_filter_tenants(self):
        response = self.client.post(
            reverse('tenant-list'),
            {
                'first_name': 'Ali',
                'last_name': 'Touré',
                'phone': '0505050505',
                'payment_status': 'irregulier',
                'profession': 'Comptable',
            },
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['business_id'].startswith('LOC-'))

        Tenant.objects.create(agency=self.agency, first_name='Fanta', last_name='Cissé', phone='0101010101')
        response = self.client.get(reverse('tenant-list'), {'payment_status': 'irregulier'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['last_name'], 'Touré')

    def test_invalid_phone(self):
        response = self.client.post(
            reverse('tenant-list'),
            {'first_name': 'Ali', 'last_name': 'Touré', 'phone': '12-34'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_user_without_agency_forbidden(self):
        loner = User.objects.create_user(username='loner', password='pass12345')
        self.client.force_authenticate(user=loner)
        response = self.client.get(reverse('tenant-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_platform_admin_sees_every_agency(self):
        Tenant.objects.create(agency=self.agency, first_name='Ali', last_name='Touré', phone='0505050505')
        Tenant.objects.create(agency=self.other_agency, first_name='Fanta', last_name='Cissé', phone='0101010101')
        admin = User.objects.create_user(username='admin', password='pass12345')
        PlatformAdmin.objects.create(user=admin)
        self.client.force_authenticate(user=admin)
        response = self.client.get(reverse('tenant-list'))
        self.assertEqual(response.data['count'], 2)


class PropertyAPITest(PropertiesAPITestCase):

    def test_create_property(self):
        data = {
            'owner': self.owner.pk,
            'title': 'Appartement Marcory',
            'location': {'commune': 'Marcory', 'quartier': 'Zone 4'},
            'details': {'type': 'appartement', 'bedrooms': 2},
            'monthly_rent': '120000',
            'usage_type': 'habitation',
        }
        response = self.client.post(reverse('property-list'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['full_address'], 'Marcory')
        self.assertTrue(response.data['business_id'].startswith('BIEN-'))

    def test_owner_from_other_agency_rejected(self):
        data = {'owner': self.other_owner.pk, 'title': 'Studio'}
        response = self.client.post(reverse('property-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('owner', response.data)

    def test_property_must_be_offered(self):
        data = {'owner': self.owner.pk, 'title': 'Studio', 'for_rent': False, 'for_sale': False}
        response = self.client.post(reverse('property-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('for_rent', response.data)

    def test_unknown_property_type_rejected(self):
        data = {'owner': self.owner.pk, 'title': 'Studio', 'details': {'type': 'chateau'}}
        response = self.client.post(reverse('property-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('details', response.data)

    def test_negative_rent_rejected(self):
        data = {'owner': self.owner.pk, 'title': 'Studio', 'monthly_rent': '-1'}
        response = self.client.post(reverse('property-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_filter_by_commune_and_rent(self):
        Property.objects.create(
            agency=self.agency,
            owner=self.owner,
            title='Studio Yopougon',
            location={'commune': 'Yopougon'},
            monthly_rent=Decimal('60000'),
        )
        response = self.client.get(reverse('property-list'), {'commune': 'cocody'})
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(reverse('property-list'), {'max_rent': '100000'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['title'], 'Studio Yopougon')

    def test_statistics(self):
        Property.objects.create(agency=self.agency, owner=self.owner, title='Terrain', is_available=False)
        response = self.client.get(reverse('property-statistics'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 2)
        self.assertEqual(response.data['available'], 1)
        self.assertEqual(response.data['by_standing']['haut'], 1)

    @override_settings(GOOGLE_MAPS_API_KEY='test-key')
    @patch('services.geocoding.requests.get')
    def test_geocode_property(self, mock_get):
        mock_response = Mock()
        mock_response.json.return_value = {
            'status': 'OK',
            'results': [{'geometry': {'location': {'lat': 5.3599, 'lng': -3.9810}}}],
        }
        mock_response.raise_for_status.return_value = None
        mock_get.return_value = mock_response

        response = self.client.post(reverse('property-geocode', args=[self.property.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['coordinates'], {'lat': 5.3599, 'lng': -3.981})
        self.property.refresh_from_db()
        self.assertTrue(self.property.has_coordinates)

    @override_settings(GOOGLE_MAPS_API_KEY='test-key')
    @patch('services.geocoding.requests.get')
    def test_geocode_failure(self, mock_get):
        mock_response = Mock()
        mock_response.json.return_value = {'status': 'ZERO_RESULTS', 'results': []}
        mock_response.raise_for_status.return_value = None
        mock_get.return_value = mock_response

        response = self.client.post(reverse('property-geocode', args=[self.property.pk]))
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    def test_geocode_without_address(self):
        bare = Property.objects.create(agency=self.agency, owner=self.owner, title='Sans adresse')
        response = self.client.post(reverse('property-geocode', args=[bare.pk]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TenantAssignmentAPITest(PropertiesAPITestCase):

    def setUp(self):
        super().setUp()
        self.tenant = Tenant.objects.create(
            agency=self.agency, first_name='Ali', last_name='Touré', phone='0505050505'
        )

    def create_assignment(self, **overrides):
        payload = {
            'property': self.property.pk,
            'tenant': self.tenant.pk,
            'lease_start': '2025-01-01',
            'rent_amount': '250000',
            'charges_amount': '15000',
        }
        payload.update(overrides)
        return self.client.post(reverse('tenant-assignment-list'), payload, format='json')

    def test_create_assignment(self):
        response = self.create_assignment()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'active')
        self.assertEqual(response.data['tenant_name'], 'Ali Touré')
        self.assertEqual(response.data['total_monthly'], '265000.00')
        assignment = PropertyTenantAssignment.objects.get(pk=response.data['id'])
        self.assertEqual(assignment.agency, self.agency)
        self.assertEqual(assignment.created_by, self.user)

    def test_duplicate_active_assignment_rejected(self):
        self.create_assignment()
        response = self.create_assignment(lease_start='2025-03-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('tenant', response.data)

    def test_lease_end_after_start(self):
        response = self.create_assignment(lease_end='2024-12-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('lease_end', response.data)

    def test_other_agency_tenant_rejected(self):
        stranger = Tenant.objects.create(
            agency=self.other_agency, first_name='Jean', last_name='Yao', phone='0102030405'
        )
        response = self.create_assignment(tenant=stranger.pk)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('tenant', response.data)

    def test_filter_active_on(self):
        PropertyTenantAssignment.objects.create(
            agency=self.agency, property=self.property, tenant=self.tenant,
            lease_start=date(2024, 1, 1), lease_end=date(2024, 12, 31),
            rent_amount=Decimal('200000'), status='terminated',
        )
        self.create_assignment()

        response = self.client.get(reverse('tenant-assignment-list'), {'active_on': '2024-06-15'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(reverse('tenant-assignment-list'), {'status': 'active'})
        self.assertEqual(response.data['count'], 1)

    def test_update_records_user(self):
        assignment_id = self.create_assignment().data['id']
        response = self.client.patch(
            reverse('tenant-assignment-detail', args=[assignment_id]), {'rent_amount': '260000'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(PropertyTenantAssignment.objects.get(pk=assignment_id).updated_by, self.user)

    def test_terminate(self):
        assignment_id = self.create_assignment().data['id']
        url = reverse('tenant-assignment-terminate', args=[assignment_id])

        response = self.client.post(url, {'lease_end': '2025-06-30'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'terminated')
        self.assertEqual(response.data['lease_end'], '2025-06-30')

        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_terminate_before_start_rejected(self):
        assignment_id = self.create_assignment().data['id']
        response = self.client.post(
            reverse('tenant-assignment-terminate', args=[assignment_id]), {'lease_end': '2024-06-30'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_scoped_to_agency(self):
        assignment_id = self.create_assignment().data['id']
        self.client.force_authenticate(user=self.other_user)
        response = self.client.get(reverse('tenant-assignment-detail', args=[assignment_id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
