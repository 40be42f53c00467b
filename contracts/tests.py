# ===== CONTRACTS APP TEST SUITE =====
"""
Test suite for contracts app functionality
File: contracts/tests.py

Test Coverage:
- Template body rendering (placeholders and conditional sections)
- Financial term defaults per contract type
- Template selection (agency first, exact usage only)
- Document generation, storage and reference codes
- Stored contract versions
- Contract lifecycle (activate, terminate, renew)
- Inventories: validation, signing and entry/exit comparison
- API endpoints for contracts and contract templates
"""

from datetime import date
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from agencies.models import Agency, AgencyUser, PlatformAdmin
from properties.models import Owner, Property, Tenant
from services import BusinessLogicError, TemplateRenderingError

from .default_templates import DEFAULT_TEMPLATE_DEFINITIONS
from .financial import build_financial_terms, format_financial_terms
from .generator import (
    ContractGenerationContext,
    build_generation_context,
    generate_contract_document,
    select_template,
)
from .models import Contract, ContractTemplate, ContractVersion, Inventory
from .templating import list_placeholders, render_template_body
from . import services as contract_services

User = get_user_model()


def build_context(contract_type, **kwargs):
    return ContractGenerationContext(
        contract_type=contract_type,
        agency={'name': 'Immo Plus', 'address': 'Plateau', 'registration_number': 'CI-ABJ-1'},
        **kwargs
    )


# =============================================================================
# TEMPLATING TESTS
# =============================================================================

class TemplatingTest(SimpleTestCase):

    def test_placeholders_resolved(self):
        html = render_template_body('<p>{{ agency.name }} / {{tenant.fullName}}</p>', {
            'agency': {'name': 'Immo Plus'},
            'tenant': {'fullName': 'Ali Touré'},
        })
        self.assertEqual(html, '<p>Immo Plus / Ali Touré</p>')

    def test_missing_values_render_empty(self):
        html = render_template_body('[{{ owner.fullName }}][{{ dates.none }}]', {'owner': {'fullName': None}})
        self.assertEqual(html, '[][]')

    def test_sections(self):
        body = '{{#financial.note}}Note: {{ financial.note }}{{/financial.note}}.'
        self.assertEqual(render_template_body(body, {'financial': {'note': 'ok'}}), 'Note: ok.')
        self.assertEqual(render_template_body(body, {'financial': {'note': ''}}), '.')

    def test_list_placeholders(self):
        body = '{{ agency.name }}{{#x}}{{ agency.name }}{{/x}}'
        self.assertEqual(list_placeholders(body), ['agency.name', 'x'])


# =============================================================================
# FINANCIAL TERMS TESTS
# =============================================================================

class FinancialTermsTest(SimpleTestCase):

    def test_habitation_defaults(self):
        context = build_context('bail_habitation', financial_terms={'monthly_rent': 150000})
        terms = build_financial_terms(context)

        self.assertEqual(terms.advance_payment, Decimal('300000'))
        self.assertEqual(terms.security_deposit, Decimal('300000'))
        self.assertEqual(terms.agency_fees, Decimal('150000'))
        self.assertEqual(terms.total_due_at_signature, Decimal('750000'))
        self.assertEqual(terms.commission_rate, 0.0)

        formatted = format_financial_terms(terms, context)
        self.assertEqual(formatted['monthlyRent'], '150 000 F CFA')
        self.assertEqual(formatted['totalDueAtSignature'], '750 000 F CFA')
        self.assertEqual(formatted['paymentDay'], '05')

    def test_explicit_values_win(self):
        context = build_context('bail_habitation', financial_terms={
            'monthly_rent': 100000,
            'security_deposit': 100000,
            'payment_day': '10',
        })
        terms = build_financial_terms(context)
        self.assertEqual(terms.security_deposit, Decimal('100000'))
        self.assertEqual(terms.total_due_at_signature, Decimal('400000'))
        self.assertEqual(format_financial_terms(terms, context)['paymentDay'], '10')

    def test_gestion_defaults(self):
        context = build_context('gestion', financial_terms={'monthly_rent': 200000})
        terms = build_financial_terms(context)
        formatted = format_financial_terms(terms, context)

        self.assertEqual(terms.commission_amount, Decimal('20000.0'))
        self.assertEqual(formatted['commissionRate'], '10%')
        self.assertEqual(formatted['maintenanceThreshold'], '50 000 F CFA')
        self.assertIn('10%', formatted['defaultCommissionText'])
        self.assertEqual(formatted['totalDueAtSignature'], 'À définir au moment de la signature')

    def test_professional_lease_has_no_signature_amounts(self):
        context = build_context('bail_professionnel', financial_terms={'monthly_rent': 500000})
        terms = build_financial_terms(context)
        self.assertEqual(terms.advance_payment, Decimal('0'))
        self.assertEqual(format_financial_terms(terms, context)['paymentTerms'], 'Versement mensuel selon facture')

    def test_no_terms(self):
        self.assertIsNone(format_financial_terms(None))


# =============================================================================
# GENERATION TESTS
# =============================================================================

class DocumentGenerationTest(TestCase):

    def setUp(self):
        self.agency = Agency.objects.create(
            name='Immo Plus', commercial_register='CI-ABJ-1', legal_representative='Me Bamba'
        )

    def test_built_in_template_used_when_none_stored(self):
        context = build_context(
            'bail_habitation',
            tenant={'first_name': 'Ali', 'last_name': 'Touré'},
            effective_date=date(2025, 1, 5),
            financial_terms={'monthly_rent': 150000},
        )
        rendered = generate_contract_document(context, agency=self.agency)

        self.assertIsNone(rendered.template_id)
        self.assertEqual(rendered.title, 'Contrat de bail habitation OHADA')
        self.assertIn('Ali Touré', rendered.html)
        self.assertIn('750 000 F CFA', rendered.html)
        self.assertIn('05 janvier 2025', rendered.html)
        self.assertIn('Abidjan', rendered.html)
        self.assertNotIn('{{', rendered.html)

    def test_unknown_type_raises(self):
        with self.assertRaises(TemplateRenderingError):
            generate_contract_document(build_context('vente'), agency=self.agency)

    def test_agency_template_preferred(self):
        ContractTemplate.objects.create(
            contract_type='bail_habitation', usage_type='habitation', name='Plateforme',
            body='PLATEFORME'
        )
        own = ContractTemplate.objects.create(
            agency=self.agency, contract_type='bail_habitation', usage_type='habitation', name='Maison',
            body='AGENCE {{ agency.name }}'
        )
        self.assertEqual(select_template('bail_habitation', 'habitation', self.agency), own)

        rendered = generate_contract_document(build_context('bail_habitation', usage_type='habitation'), agency=self.agency)
        self.assertEqual(rendered.html, 'AGENCE Immo Plus')
        self.assertEqual(rendered.template_id, own.pk)

    def test_usage_must_match(self):
        generic = ContractTemplate.objects.create(contract_type='bail_habitation', name='Générique', body='G')
        self.assertIsNone(select_template('bail_habitation', 'habitation', self.agency))
        self.assertEqual(select_template('bail_habitation', None, self.agency), generic)

        exact = ContractTemplate.objects.create(
            contract_type='bail_habitation', usage_type='habitation', name='Habitation', body='H'
        )
        self.assertEqual(select_template('bail_habitation', 'habitation', self.agency), exact)
        self.assertIsNone(select_template('bail_habitation', 'professionnel', self.agency))

    def test_other_agency_template_ignored(self):
        other = Agency.objects.create(name='Autre', commercial_register='CI-ABJ-2')
        ContractTemplate.objects.create(agency=other, contract_type='gestion', name='Autre', body='AUTRE')
        self.assertIsNone(select_template('gestion', None, self.agency))

    def test_inactive_template_ignored(self):
        ContractTemplate.objects.create(contract_type='gestion', name='Ancien', body='X', is_active=False)
        self.assertIsNone(select_template('gestion', None, self.agency))

    def test_seed_contract_templates_command(self):
        out = StringIO()
        call_command('seed_contract_templates', stdout=out)
        call_command('seed_contract_templates', stdout=out)
        self.assertEqual(
            ContractTemplate.objects.filter(agency__isnull=True).count(),
            len(DEFAULT_TEMPLATE_DEFINITIONS)
        )
        self.assertIn('Skipped: 3', out.getvalue())


# =============================================================================
# CONTRACT SERVICE TESTS
# =============================================================================

class ContractServiceTest(TestCase):

    def setUp(self):
        self.agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')
        self.owner = Owner.objects.create(agency=self.agency, first_name='Awa', last_name='Koné', phone='0707070707')
        self.tenant = Tenant.objects.create(agency=self.agency, first_name='Ali', last_name='Touré', phone='0505050505')
        self.property = Property.objects.create(
            agency=self.agency, owner=self.owner, title='Villa Cocody', usage_type='habitation'
        )
        self.contract = Contract.objects.create(
            agency=self.agency,
            property=self.property,
            tenant=self.tenant,
            contract_type='location',
            start_date=date(2025, 1, 1),
            end_date=date(2025, 12, 31),
            monthly_rent=Decimal('150000'),
        )

    def test_owner_and_commission_filled(self):
        self.assertEqual(self.contract.owner, self.owner)
        self.assertEqual(self.contract.commission_amount, Decimal('15000.00'))
        self.assertTrue(self.contract.business_id.startswith('CONT-'))

    def test_property_relation(self):
        self.assertEqual(Contract._meta.get_field('property').related_model, Property)
        self.assertEqual(Contract.objects.get(pk=self.contract.pk).property, self.property)
        self.assertEqual(list(self.property.contracts.all()), [self.contract])

    def test_commission_follows_rent_and_rate(self):
        mandate = Contract.objects.create(
            agency=self.agency, property=self.property, contract_type='gestion',
            start_date=date(2025, 1, 1), monthly_rent=Decimal('100000'),
        )
        self.assertEqual(mandate.commission_amount, Decimal('10000.00'))

        mandate.monthly_rent = Decimal('200000')
        mandate.save()
        self.assertEqual(mandate.commission_amount, Decimal('20000.00'))
        context = build_generation_context(mandate)
        self.assertEqual(context.financial_terms['commission_amount'], 20000.0)

        stored = Contract.objects.get(pk=mandate.pk)
        stored.commission_rate = Decimal('5')
        stored.save(update_fields=['commission_rate', 'updated_at'])
        stored.refresh_from_db()
        self.assertEqual(stored.commission_amount, Decimal('10000.00'))

    def test_edited_commission_kept(self):
        stored = Contract.objects.get(pk=self.contract.pk)
        stored.monthly_rent = Decimal('180000')
        stored.commission_amount = Decimal('12000')
        stored.save()
        stored.refresh_from_db()
        self.assertEqual(stored.commission_amount, Decimal('12000.00'))

        stored.terms = 'Clause'
        stored.save()
        self.assertEqual(stored.commission_amount, Decimal('12000.00'))

    def test_template_type(self):
        self.assertEqual(self.contract.get_template_type(), 'bail_habitation')
        self.property.usage_type = 'professionnel'
        self.assertEqual(self.contract.get_template_type(), 'bail_professionnel')

    def test_due_date_clamped(self):
        self.contract.start_date = date(2025, 1, 31)
        self.assertEqual(self.contract.get_due_date(2025, 2), date(2025, 2, 28))

    def test_covers_month(self):
        self.assertTrue(self.contract.covers_month(2025, 6))
        self.assertFalse(self.contract.covers_month(2026, 1))

    def test_reference_code(self):
        self.assertEqual(contract_services.get_contract_reference_code(self.contract), 'LOC001/BIEN001/PROP001')

    def test_generate_and_store_versions(self):
        contract_services.generate_and_store_document(self.contract)
        contract_services.generate_and_store_document(self.contract)

        self.contract.refresh_from_db()
        self.assertEqual(len(self.contract.documents), 2)
        self.assertEqual(self.contract.documents[1]['version'], 2)
        self.assertEqual(self.contract.documents[0]['reference_code'], 'LOC001/BIEN001/PROP001')
        self.assertEqual(self.contract.documents[0]['financial_terms']['total_due_at_signature'], 750000.0)

    def test_generation_keeps_versions(self):
        user = User.objects.create_user(username='redacteur', password='pass12345')
        first = contract_services.generate_and_store_document(self.contract, user=user)
        contract_services.generate_and_store_document(self.contract)

        versions = list(self.contract.versions.order_by('version_number'))
        self.assertEqual([version.version_number for version in versions], [1, 2])
        self.assertEqual(versions[0].body, first.html)
        self.assertEqual(versions[0].created_by, user)
        self.assertIsNone(versions[1].created_by)
        self.assertEqual(versions[0].metadata['reference_code'], 'LOC001/BIEN001/PROP001')
        self.assertNotIn('html', versions[0].metadata)

    def test_version_numbers_follow_existing_versions(self):
        ContractVersion.objects.create(contract=self.contract, version_number=3, body='<p>v3</p>')
        contract_services.generate_and_store_document(self.contract)

        self.contract.refresh_from_db()
        self.assertEqual(self.contract.documents[0]['version'], 4)
        self.assertEqual(self.contract.versions.first().version_number, 4)

    def test_sale_contract_has_no_document(self):
        sale = Contract.objects.create(
            agency=self.agency, property=self.property, contract_type='vente',
            start_date=date(2025, 1, 1), sale_price=Decimal('50000000'),
        )
        with self.assertRaisesMessage(TemplateRenderingError, 'Template vente non reconnu'):
            contract_services.render_contract(sale)

    def test_activate_and_terminate(self):
        contract_services.activate_contract(self.contract)
        self.property.refresh_from_db()
        self.assertFalse(self.property.is_available)

        contract_services.terminate_contract(self.contract, date(2025, 6, 30))
        self.property.refresh_from_db()
        self.assertTrue(self.property.is_available)
        self.assertEqual(self.contract.status, 'terminated')
        self.assertEqual(self.contract.end_date, date(2025, 6, 30))

        with self.assertRaises(BusinessLogicError):
            contract_services.activate_contract(self.contract)

    def test_renew(self):
        contract_services.activate_contract(self.contract)
        successor = contract_services.renew_contract(self.contract, months=12, monthly_rent=Decimal('160000'))

        self.assertEqual(self.contract.status, 'renewed')
        self.assertEqual(successor.status, 'active')
        self.assertEqual(successor.start_date, date(2026, 1, 1))
        self.assertEqual(successor.end_date, date(2026, 12, 31))
        self.assertEqual(successor.monthly_rent, Decimal('160000'))
        self.assertEqual(successor.commission_amount, Decimal('16000.00'))

    def test_renew_requires_active_contract(self):
        with self.assertRaises(BusinessLogicError):
            contract_services.renew_contract(self.contract)


# =============================================================================
# API TESTS
# =============================================================================

class ContractsAPITestCase(APITestCase):

    def setUp(self):
        self.agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')
        self.other_agency = Agency.objects.create(name='Autre Agence', commercial_register='CI-ABJ-2')
        self.user = User.objects.create_user(username='agent', password='pass12345')
        AgencyUser.objects.create(user=self.user, agency=self.agency, role='agent')

        self.owner = Owner.objects.create(agency=self.agency, first_name='Awa', last_name='Koné', phone='0707070707')
        self.tenant = Tenant.objects.create(agency=self.agency, first_name='Ali', last_name='Touré', phone='0505050505')
        self.property = Property.objects.create(
            agency=self.agency, owner=self.owner, title='Villa Cocody', usage_type='habitation'
        )
        self.contract = Contract.objects.create(
            agency=self.agency,
            property=self.property,
            tenant=self.tenant,
            contract_type='location',
            start_date=date(2025, 1, 1),
            end_date=date(2025, 12, 31),
            monthly_rent=Decimal('150000'),
        )

        self.client.force_authenticate(user=self.user)


class ContractAPITest(ContractsAPITestCase):

    def test_create_contract(self):
        data = {
            'property': self.property.pk,
            'tenant': self.tenant.pk,
            'contract_type': 'location',
            'start_date': '2025-03-01',
            'end_date': '2026-02-28',
            'monthly_rent': '120000',
        }
        response = self.client.post(reverse('contract-list'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['owner'], self.owner.pk)
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['template_type'], 'bail_habitation')

    def test_rental_requires_tenant_and_rent(self):
        data = {'property': self.property.pk, 'contract_type': 'location', 'start_date': '2025-03-01'}
        response = self.client.post(reverse('contract-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('tenant', response.data)
        self.assertIn('monthly_rent', response.data)

    def test_end_date_after_start(self):
        data = {
            'property': self.property.pk,
            'contract_type': 'gestion',
            'start_date': '2025-03-01',
            'end_date': '2025-02-01',
        }
        response = self.client.post(reverse('contract-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end_date', response.data)

    def test_records_of_other_agency_rejected(self):
        other_owner = Owner.objects.create(
            agency=self.other_agency, first_name='Jean', last_name='Kouassi', phone='0708080808'
        )
        other_property = Property.objects.create(agency=self.other_agency, owner=other_owner, title='Ailleurs')
        data = {'property': other_property.pk, 'contract_type': 'gestion', 'start_date': '2025-03-01'}
        response = self.client.post(reverse('contract-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('property', response.data)

    def test_detail_includes_reference_code(self):
        response = self.client.get(reverse('contract-detail', args=[self.contract.pk]))
        self.assertEqual(response.data['reference_code'], 'LOC001/BIEN001/PROP001')

    def test_patch_rent_recomputes_commission(self):
        url = reverse('contract-detail', args=[self.contract.pk])
        response = self.client.patch(url, {'monthly_rent': '180000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['commission_amount'], '18000.00')

        response = self.client.patch(
            url, {'monthly_rent': '200000', 'commission_amount': '18000.00'}, format='json'
        )
        self.assertEqual(response.data['commission_amount'], '18000.00')

    def test_generate_document(self):
        response = self.client.post(
            reverse('contract-generate-document', args=[self.contract.pk]),
            {'financial_terms': {'payment_day': '10'}},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('payable le 10', response.data['html'])
        self.contract.refresh_from_db()
        self.assertEqual(len(self.contract.documents), 1)
        self.assertEqual(self.contract.documents[0]['generated_by'], self.user.pk)

    def test_versions(self):
        response = self.client.get(reverse('contract-latest-version', args=[self.contract.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        for _ in range(2):
            self.client.post(reverse('contract-generate-document', args=[self.contract.pk]), {}, format='json')

        response = self.client.get(reverse('contract-versions', args=[self.contract.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['version_number'] for item in response.data], [2, 1])
        self.assertEqual(response.data[0]['created_by'], self.user.pk)

        response = self.client.get(reverse('contract-latest-version', args=[self.contract.pk]))
        self.assertEqual(response.data['version_number'], 2)

    def test_preview_not_stored(self):
        response = self.client.post(reverse('contract-preview', args=[self.contract.pk]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.contract.refresh_from_db()
        self.assertEqual(self.contract.documents, [])

    def test_sale_contract_document_rejected(self):
        sale = Contract.objects.create(
            agency=self.agency, property=self.property, contract_type='vente',
            start_date=date(2025, 1, 1), sale_price=Decimal('50000000'),
        )
        response = self.client.post(reverse('contract-generate-document', args=[sale.pk]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Template vente non reconnu')

    def test_lifecycle_actions(self):
        response = self.client.post(reverse('contract-activate', args=[self.contract.pk]))
        self.assertEqual(response.data['status'], 'active')

        response = self.client.post(reverse('contract-renew', args=[self.contract.pk]), {'months': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['start_date'], '2026-01-01')
        self.assertEqual(response.data['end_date'], '2026-06-30')

        response = self.client.post(reverse('contract-terminate', args=[self.contract.pk]), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_contract_property_protected(self):
        response = self.client.delete(reverse('property-detail', args=[self.property.pk]))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)


class ContractTemplateAPITest(ContractsAPITestCase):

    def setUp(self):
        super().setUp()
        self.platform_template = ContractTemplate.objects.create(
            contract_type='gestion', name='Mandat plateforme', body='<p>{{ agency.name }}</p>'
        )

    def test_list_includes_platform_templates(self):
        ContractTemplate.objects.create(agency=self.other_agency, contract_type='gestion', name='Autre', body='X')
        response = self.client.get(reverse('contract-template-list'))
        self.assertEqual(response.data['count'], 1)
        self.assertTrue(response.data['results'][0]['is_platform_wide'])

    def test_agency_creates_own_template(self):
        response = self.client.post(
            reverse('contract-template-list'),
            {'contract_type': 'bail_habitation', 'name': 'Notre bail', 'body': '<p>{{ tenant.fullName }}</p>'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['agency'], self.agency.pk)

    def test_platform_template_read_only_for_agencies(self):
        response = self.client.patch(
            reverse('contract-template-detail', args=[self.platform_template.pk]),
            {'name': 'Modifié'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_platform_admin_edits_platform_template(self):
        admin = User.objects.create_user(username='admin', password='pass12345')
        PlatformAdmin.objects.create(user=admin)
        self.client.force_authenticate(user=admin)
        response = self.client.patch(
            reverse('contract-template-detail', args=[self.platform_template.pk]),
            {'name': 'Modifié'},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_defaults(self):
        response = self.client.get(reverse('contract-template-defaults'))
        self.assertEqual([item['key'] for item in response.data], ['gestion', 'bail_habitation', 'bail_professionnel'])

    def test_render_body(self):
        response = self.client.post(
            reverse('contract-template-render'),
            {'body': '<p>{{ agency.name }}</p>{{#x}}caché{{/x}}', 'context': {'agency': {'name': 'Immo Plus'}}},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['html'], '<p>Immo Plus</p>')
        self.assertEqual(response.data['placeholders'], ['agency.name', 'x'])

    def test_render_stored_template(self):
        response = self.client.post(
            reverse('contract-template-render'),
            {'template_id': self.platform_template.pk, 'context': {'agency': {'name': 'Immo Plus'}}},
            format='json'
        )
        self.assertEqual(response.data['html'], '<p>Immo Plus</p>')

    def test_render_requires_body(self):
        response = self.client.post(reverse('contract-template-render'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


# =============================================================================
# INVENTORY TESTS
# =============================================================================

def build_rooms(**conditions):
    """One 'Salon' room holding the given element conditions."""
    return [{'name': 'Salon', 'elements': [
        {'name': name, 'condition': condition} for name, condition in conditions.items()
    ]}]


class InventoryServiceTest(TestCase):

    def setUp(self):
        self.agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')
        self.owner = Owner.objects.create(agency=self.agency, first_name='Awa', last_name='Koné', phone='0707070707')
        self.tenant = Tenant.objects.create(agency=self.agency, first_name='Ali', last_name='Touré', phone='0505050505')
        self.property = Property.objects.create(agency=self.agency, owner=self.owner, title='Villa Cocody')
        self.contract = Contract.objects.create(
            agency=self.agency, property=self.property, tenant=self.tenant, contract_type='location',
            start_date=date(2025, 1, 1), monthly_rent=Decimal('150000'),
        )
        self.entry = Inventory.objects.create(
            agency=self.agency, property=self.property, contract=self.contract, tenant=self.tenant,
            type='entry', date=date(2025, 1, 1), rooms=build_rooms(Murs='neuf', Sol='bon', Porte='usage'),
        )

    def test_compare_lists_degradations(self):
        exit_inventory = Inventory(
            agency=self.agency, property=self.property, type='exit', date=date(2025, 12, 31),
            rooms=build_rooms(Murs='usage', Sol='bon', Porte='neuf', Fenetre='mauvais'),
        )
        self.assertEqual(
            contract_services.compare_inventories(self.entry, exit_inventory),
            [{'room': 'Salon', 'element': 'Murs', 'entry': 'neuf', 'exit': 'usage'}]
        )

    def test_find_entry_by_contract(self):
        Inventory.objects.create(
            agency=self.agency, property=self.property, type='entry', date=date(2025, 6, 1),
        )
        exit_inventory = Inventory.objects.create(
            agency=self.agency, property=self.property, contract=self.contract, tenant=self.tenant,
            type='exit', date=date(2025, 12, 31),
        )
        self.assertEqual(contract_services.find_entry_inventory(exit_inventory), self.entry)

    def test_find_entry_by_tenant(self):
        exit_inventory = Inventory.objects.create(
            agency=self.agency, property=self.property, tenant=self.tenant, type='exit', date=date(2025, 12, 31),
        )
        self.assertEqual(contract_services.find_entry_inventory(exit_inventory), self.entry)

    def test_no_entry_after_exit_date(self):
        exit_inventory = Inventory.objects.create(
            agency=self.agency, property=self.property, tenant=self.tenant, type='exit', date=date(2024, 12, 31),
        )
        self.assertIsNone(contract_services.find_entry_inventory(exit_inventory))

    def test_sign(self):
        contract_services.sign_inventory(self.entry)
        self.entry.refresh_from_db()
        self.assertEqual(self.entry.status, 'signed')
        self.assertIsNotNone(self.entry.signed_at)

        with self.assertRaises(BusinessLogicError):
            contract_services.sign_inventory(self.entry)

    def test_empty_inventory_not_signed(self):
        empty = Inventory.objects.create(
            agency=self.agency, property=self.property, type='entry', date=date(2025, 1, 2),
        )
        with self.assertRaises(BusinessLogicError):
            contract_services.sign_inventory(empty)


class InventoryAPITest(ContractsAPITestCase):

    def create_inventory(self, **overrides):
        payload = {
            'property': self.property.pk,
            'contract': self.contract.pk,
            'type': 'entry',
            'date': '2025-01-01',
            'rooms': build_rooms(Murs='bon', Sol='neuf'),
            'meter_readings': {'electricity': {'index': 1520}, 'water': {'index': 87}},
            'keys_count': 3,
        }
        payload.update(overrides)
        return self.client.post(reverse('inventory-list'), payload, format='json')

    def test_create_inventory(self):
        response = self.create_inventory()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['tenant'], self.tenant.pk)
        self.assertEqual(response.data['tenant_name'], 'Ali Touré')
        inventory = Inventory.objects.get(pk=response.data['id'])
        self.assertEqual(inventory.agency, self.agency)
        self.assertEqual(inventory.created_by, self.user)

    def test_unknown_condition_rejected(self):
        response = self.create_inventory(rooms=build_rooms(Murs='cassé'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('rooms', response.data)

    def test_contract_must_match_property(self):
        other_property = Property.objects.create(agency=self.agency, owner=self.owner, title='Studio Marcory')
        response = self.create_inventory(property=other_property.pk)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('contract', response.data)

    def test_sign_freezes_inventory(self):
        inventory_id = self.create_inventory().data['id']

        response = self.client.post(reverse('inventory-complete', args=[inventory_id]))
        self.assertEqual(response.data['status'], 'completed')
        response = self.client.post(reverse('inventory-sign', args=[inventory_id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'signed')

        url = reverse('inventory-detail', args=[inventory_id])
        response = self.client.patch(url, {'observations': 'Trop tard'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.post(reverse('inventory-sign', args=[inventory_id]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_comparison(self):
        self.create_inventory()
        exit_id = self.create_inventory(
            type='exit', date='2025-12-31', rooms=build_rooms(Murs='mauvais', Sol='neuf')
        ).data['id']

        response = self.client.get(reverse('inventory-comparison', args=[exit_id]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['degradations'], [
            {'room': 'Salon', 'element': 'Murs', 'entry': 'bon', 'exit': 'mauvais'}
        ])

    def test_comparison_needs_exit_and_entry(self):
        entry_id = self.create_inventory().data['id']
        response = self.client.get(reverse('inventory-comparison', args=[entry_id]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        Inventory.objects.filter(pk=entry_id).delete()
        exit_id = self.create_inventory(type='exit', date='2025-12-31').data['id']
        response = self.client.get(reverse('inventory-comparison', args=[exit_id]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_filter_by_type(self):
        self.create_inventory()
        self.create_inventory(type='exit', date='2025-12-31')
        response = self.client.get(reverse('inventory-list'), {'type': 'exit'})
        self.assertEqual(response.data['count'], 1)
