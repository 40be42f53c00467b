# ===== SERVICES LAYER TEST SUITE =====
"""
Test suite for the shared services layer
File: services/tests.py

Test Coverage:
- Amount, currency and French date formatting
- Calendar helpers (month arithmetic, due-date clamping)
- Business identifiers, URL slugs and agency reference codes
- Geocoding client with the Google Maps API mocked
- Service configuration checks
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch, Mock

import requests
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings

from agencies.models import Agency
from properties.models import Owner, Property

from . import (
    BusinessLogicError,
    ReceiptValidationError,
    check_service_health,
    safe_next_business_id,
    validate_service_configuration,
)
from .business_logic import (
    add_months,
    build_index_map,
    clamp_day,
    compute_reference_code,
    extract_business_id_from_slug,
    format_amount,
    format_counter,
    format_currency_xof,
    format_french_date,
    format_short_date,
    generate_business_id,
    generate_slug,
    generate_url_slug,
    get_month_name,
    get_payment_method_label,
    is_valid_business_id,
    iter_months,
    next_business_id,
    parse_business_id,
    to_decimal,
)
from .geocoding import GeocodingService


# =============================================================================
# AMOUNTS AND DATES
# =============================================================================

class FormattingTest(SimpleTestCase):
    """Amounts in F CFA and French calendar labels"""

    def test_to_decimal(self):
        self.assertEqual(to_decimal('150000'), Decimal('150000'))
        self.assertEqual(to_decimal(12.5), Decimal('12.5'))
        self.assertEqual(to_decimal(None), Decimal('0'))
        self.assertEqual(to_decimal(''), Decimal('0'))

    def test_to_decimal_invalid_value_is_zero(self):
        with self.assertLogs('services.business_logic', level='WARNING'):
            self.assertEqual(to_decimal('abc'), Decimal('0'))

    def test_format_amount_uses_space_separator(self):
        self.assertEqual(format_amount(1500000), '1 500 000')
        self.assertEqual(format_amount(999), '999')
        self.assertEqual(format_amount(Decimal('150000.60')), '150 001')

    def test_format_currency_xof(self):
        self.assertEqual(format_currency_xof(150000), '150 000 F CFA')
        self.assertEqual(format_currency_xof(None), '0 F CFA')

    def test_month_names(self):
        self.assertEqual(get_month_name(1), 'Janvier')
        self.assertEqual(get_month_name('8'), 'Août')
        self.assertEqual(get_month_name(12), 'Décembre')
        self.assertEqual(get_month_name(13), '')
        self.assertEqual(get_month_name(None), '')

    def test_french_dates(self):
        self.assertEqual(format_french_date(date(2025, 1, 5)), '05 janvier 2025')
        self.assertEqual(format_french_date('2025-08-15'), '15 août 2025')
        self.assertEqual(format_french_date(datetime(2025, 3, 1, 10, 30)), '01 mars 2025')
        self.assertEqual(format_french_date(None), '')
        self.assertEqual(format_short_date(date(2025, 1, 5)), '05/01/2025')

    def test_payment_method_labels(self):
        self.assertEqual(get_payment_method_label('mobile_money'), 'Mobile Money')
        self.assertEqual(get_payment_method_label('especes'), 'Espèces')
        self.assertEqual(get_payment_method_label('crypto'), 'crypto')
        self.assertEqual(get_payment_method_label(None), '')


class CalendarHelpersTest(SimpleTestCase):

    def test_clamp_day(self):
        self.assertEqual(clamp_day(2025, 2, 31), date(2025, 2, 28))
        self.assertEqual(clamp_day(2024, 2, 30), date(2024, 2, 29))
        self.assertEqual(clamp_day(2025, 4, 15), date(2025, 4, 15))

    def test_add_months(self):
        self.assertEqual(add_months(date(2025, 1, 31), 1), date(2025, 2, 28))
        self.assertEqual(add_months(date(2025, 11, 10), 3), date(2026, 2, 10))
        self.assertEqual(add_months(date(2025, 3, 10), 12), date(2026, 3, 10))

    def test_iter_months_crosses_year(self):
        months = list(iter_months(date(2024, 11, 15), date(2025, 2, 1)))
        self.assertEqual(months, [(2024, 11), (2024, 12), (2025, 1), (2025, 2)])

    def test_iter_months_empty_when_reversed(self):
        self.assertEqual(list(iter_months(date(2025, 3, 1), date(2025, 1, 1))), [])


# =============================================================================
# BUSINESS IDENTIFIERS
# =============================================================================

class BusinessIdTest(SimpleTestCase):
    """TYPE-YYMMDD-NNNNN identifiers and URL slugs"""

    def test_generate_business_id(self):
        self.assertEqual(generate_business_id('PROP', 1, date(2026, 1, 30)), 'PROP-260130-00001')
        self.assertEqual(generate_business_id('CONT', 42, date(2025, 12, 5)), 'CONT-251205-00042')

    def test_generate_business_id_rejects_unknown_type(self):
        with self.assertRaises(BusinessLogicError):
            generate_business_id('XYZ', 1)

    def test_counter_bounds(self):
        self.assertEqual(format_counter(7), '00007')
        with self.assertRaises(BusinessLogicError):
            format_counter(0)
        with self.assertRaises(BusinessLogicError):
            format_counter(100000)

    def test_parse_business_id(self):
        parsed = parse_business_id('BIEN-260130-00042')
        self.assertEqual(parsed.type, 'BIEN')
        self.assertEqual(parsed.year, 2026)
        self.assertEqual(parsed.month, 1)
        self.assertEqual(parsed.day, 30)
        self.assertEqual(parsed.counter, 42)
        self.assertEqual(parsed.date_key, '260130')

    def test_parse_invalid_business_ids(self):
        self.assertIsNone(parse_business_id('ZZZ-260130-00001'))
        self.assertIsNone(parse_business_id('PROP-2601-00001'))
        self.assertIsNone(parse_business_id(''))
        self.assertFalse(is_valid_business_id('hello'))
        self.assertTrue(is_valid_business_id('LOC-250101-00003'))

    def test_slugs(self):
        self.assertEqual(generate_slug('Jean Dupont à Cocody'), 'jean-dupont-a-cocody')
        self.assertEqual(len(generate_slug('a' * 80)), 50)
        slug = generate_url_slug('PROP-260130-00001', 'Jean Dupont')
        self.assertEqual(slug, 'PROP-260130-00001-jean-dupont')
        self.assertEqual(extract_business_id_from_slug(slug), 'PROP-260130-00001')
        self.assertIsNone(extract_business_id_from_slug('jean-dupont'))


class NextBusinessIdTest(TestCase):
    """Daily counters continue from the highest stored identifier"""

    def test_first_id_of_the_day(self):
        self.assertEqual(next_business_id(Agency, 'AGEN', date(2020, 1, 1)), 'AGEN-200101-00001')

    def test_counter_continues_from_last_id(self):
        Agency.objects.create(name='A', commercial_register='CI-ABJ-1', business_id='AGEN-200101-00007')
        Agency.objects.create(name='B', commercial_register='CI-ABJ-2', business_id='AGEN-200101-00003')
        self.assertEqual(next_business_id(Agency, 'AGEN', date(2020, 1, 1)), 'AGEN-200101-00008')

    def test_records_get_identifiers_on_save(self):
        agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-3')
        owner = Owner.objects.create(agency=agency, first_name='Awa', last_name='Koné', phone='0707070707')
        self.assertTrue(agency.business_id.startswith('AGEN-'))
        self.assertTrue(owner.business_id.startswith('PROP-'))
        self.assertTrue(owner.get_url_slug().endswith('-awa-kone'))

    def test_safe_allocation_returns_none_when_counter_exhausted(self):
        with patch('services.business_logic.next_business_id', side_effect=BusinessLogicError('full')):
            with self.assertLogs('services', level='ERROR'):
                self.assertIsNone(safe_next_business_id(Agency, 'AGEN'))


# =============================================================================
# REFERENCE CODES
# =============================================================================

class ReferenceCodeTest(SimpleTestCase):
    """LOC###/BIEN###/PROP### agency reference codes"""

    def test_build_index_map_orders_by_creation(self):
        now = datetime(2025, 1, 1, 12, 0)
        items = [
            {'id': 10, 'created_at': now + timedelta(days=2)},
            {'id': 11, 'created_at': now},
            {'id': 12, 'created_at': None},
        ]
        self.assertEqual(build_index_map(items), {'12': 1, '11': 2, '10': 3})

    def test_compute_reference_code(self):
        code = compute_reference_code(
            tenant_id=5, property_id=7, owner_id=9,
            tenants={'5': 1}, properties={'7': 4}, owners={'9': 2},
        )
        self.assertEqual(code, 'LOC001/BIEN004/PROP002')

    def test_missing_entity_segments_are_skipped(self):
        code = compute_reference_code(property_id=7, owner_id=9, properties={'7': 12}, owners={'9': 3})
        self.assertEqual(code, 'BIEN012/PROP003')

    def test_unknown_entity_falls_back_to_id_characters(self):
        self.assertEqual(compute_reference_code(tenant_id='ab-c123'), 'LOCABC')

    def test_no_entity_gives_none(self):
        self.assertIsNone(compute_reference_code())


# =============================================================================
# GEOCODING
# =============================================================================

@override_settings(GOOGLE_MAPS_API_KEY='test-key')
class GeocodingServiceTest(TestCase):
    """Google Maps geocoding with the HTTP layer mocked"""

    def setUp(self):
        self.service = GeocodingService()
        self.ok_response = {
            'status': 'OK',
            'results': [{'geometry': {'location': {'lat': 5.3599517, 'lng': -3.9810909}}}],
        }

    def _mock_response(self, payload):
        response = Mock()
        response.json.return_value = payload
        response.raise_for_status.return_value = None
        return response

    @patch('services.geocoding.requests.get')
    def test_geocode_address_success(self, mock_get):
        mock_get.return_value = self._mock_response(self.ok_response)

        result = self.service.geocode_address('Rue des Jardins, Deux Plateaux, Cocody')

        self.assertEqual(result, (5.3599517, -3.9810909))
        params = mock_get.call_args[1]['params']
        self.assertEqual(params['key'], 'test-key')
        self.assertTrue(params['address'].endswith("Côte d'Ivoire"))

    @patch('services.geocoding.requests.get')
    def test_country_not_appended_twice(self, mock_get):
        mock_get.return_value = self._mock_response(self.ok_response)

        self.service.geocode_address("Cocody, Abidjan, Côte d'Ivoire")

        self.assertEqual(mock_get.call_args[1]['params']['address'], "Cocody, Abidjan, Côte d'Ivoire")

    @patch('services.geocoding.requests.get')
    def test_zero_results(self, mock_get):
        mock_get.return_value = self._mock_response({'status': 'ZERO_RESULTS', 'results': []})
        self.assertIsNone(self.service.geocode_address('Nowhere'))

    @patch('services.geocoding.requests.get')
    def test_network_error(self, mock_get):
        mock_get.side_effect = requests.ConnectionError('down')
        self.assertIsNone(self.service.geocode_address('Cocody'))

    @patch('services.geocoding.requests.get')
    def test_empty_address_skips_request(self, mock_get):
        self.assertIsNone(self.service.geocode_address('   '))
        mock_get.assert_not_called()

    @patch('services.geocoding.requests.get')
    def test_missing_api_key(self, mock_get):
        service = GeocodingService(api_key='')
        self.assertIsNone(service.geocode_address('Cocody'))
        mock_get.assert_not_called()

    @patch('services.geocoding.requests.get')
    def test_geocode_property_stores_coordinates(self, mock_get):
        mock_get.return_value = self._mock_response(self.ok_response)
        agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-10')
        owner = Owner.objects.create(agency=agency, first_name='Awa', last_name='Koné', phone='0707070707')
        property_obj = Property.objects.create(
            agency=agency,
            owner=owner,
            title='Villa Riviera',
            location={'address_line': 'Rue des Jardins', 'quartier': 'Riviera 3', 'commune': 'Cocody'},
        )

        self.assertTrue(self.service.geocode_property(property_obj))

        property_obj.refresh_from_db()
        self.assertTrue(property_obj.has_coordinates)
        self.assertEqual(property_obj.location['commune'], 'Cocody')
        self.assertEqual(property_obj.get_coordinates(), (5.3599517, -3.9810909))

    @patch('services.geocoding.requests.get')
    def test_batch_geocoding_counts(self, mock_get):
        mock_get.return_value = self._mock_response(self.ok_response)
        agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-11')
        owner = Owner.objects.create(agency=agency, first_name='Awa', last_name='Koné', phone='0707070707')
        Property.objects.create(agency=agency, owner=owner, title='A', location={'commune': 'Cocody'})
        Property.objects.create(agency=agency, owner=owner, title='B', location={})
        Property.objects.create(
            agency=agency, owner=owner, title='C',
            location={'commune': 'Marcory', 'coordinates': {'lat': 5.3, 'lng': -3.9}},
        )

        results = self.service.batch_geocode_properties(Property.objects.all(), delay=0)

        self.assertEqual(results['total'], 3)
        self.assertEqual(results['success'], 1)
        self.assertEqual(results['skipped'], 1)
        self.assertEqual(results['failed'], 1)

    @patch('services.geocoding.requests.get')
    def test_geocode_properties_command(self, mock_get):
        mock_get.return_value = self._mock_response(self.ok_response)
        agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-12')
        owner = Owner.objects.create(agency=agency, first_name='Awa', last_name='Koné', phone='0707070707')
        Property.objects.create(agency=agency, owner=owner, title='A', location={'commune': 'Cocody'})

        out = StringIO()
        call_command('geocode_properties', '--delay', '0', stdout=out)
        self.assertIn('Successfully geocoded: 1', out.getvalue())

        out = StringIO()
        call_command('geocode_properties', stdout=out)
        self.assertIn('All properties already have coordinates', out.getvalue())


# =============================================================================
# CONFIGURATION CHECKS
# =============================================================================

class ServiceConfigurationTest(SimpleTestCase):

    @override_settings(GOOGLE_MAPS_API_KEY='')
    def test_missing_api_key_reported(self):
        is_valid, errors = validate_service_configuration()
        self.assertFalse(is_valid)
        self.assertIn("GOOGLE_MAPS_API_KEY not configured in settings", errors)

    @override_settings(GOOGLE_MAPS_API_KEY='key')
    def test_complete_configuration(self):
        is_valid, errors = validate_service_configuration()
        self.assertTrue(is_valid)
        self.assertEqual(errors, [])

    @override_settings(GOOGLE_MAPS_API_KEY='key')
    def test_service_health(self):
        health = check_service_health()
        self.assertTrue(health['geocoding']['api_key_configured'])
        self.assertTrue(health['email']['available'])

    def test_receipt_validation_error_message(self):
        error = ReceiptValidationError({'rent_amount': 'Montant du loyer invalide'})
        self.assertEqual(str(error), 'Montant du loyer invalide')
        self.assertEqual(error.errors, {'rent_amount': 'Montant du loyer invalide'})
