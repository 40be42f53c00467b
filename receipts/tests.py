# ===== RECEIPTS APP TEST SUITE =====
"""
Test suite for receipts app functionality
File: receipts/tests.py

Test Coverage:
- Receipt input validation and amount split
- Receipt numbering per agency and period
- One receipt per contract and period, retries on number collisions
- Owner reversal with fees and expense transactions
- Owner and tenant statements
- API endpoints for receipts, transactions and statements
"""

from datetime import date
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from agencies.models import Agency, AgencyUser
from contracts.models import Contract
from properties.models import Owner, Property, Tenant
from services import ReceiptValidationError

from .models import FinancialStatement, FinancialTransaction, RentReceipt
from . import services as receipt_services

User = get_user_model()


class ReceiptFixtureMixin:
    """Agency with one active rental contract at 150 000 F CFA"""

    def create_fixtures(self):
        self.agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')
        self.owner = Owner.objects.create(
            agency=self.agency, first_name='Awa', last_name='Koné', phone='0707070707'
        )
        self.tenant = Tenant.objects.create(
            agency=self.agency, first_name='Ali', last_name='Touré', phone='0505050505'
        )
        self.property = Property.objects.create(
            agency=self.agency,
            owner=self.owner,
            title='Villa Cocody',
            location={'commune': 'Cocody', 'address_line': 'Rue des Jardins'},
        )
        self.contract = Contract.objects.create(
            agency=self.agency,
            property=self.property,
            tenant=self.tenant,
            contract_type='location',
            status='active',
            start_date=date(2025, 1, 1),
            end_date=date(2025, 12, 31),
            monthly_rent=Decimal('150000'),
        )

    def issue(self, payment_date, **extra):
        data = {'rent_amount': Decimal('150000'), 'charges': Decimal('10000'), 'payment_date': payment_date}
        data.update(extra)
        return receipt_services.issue_rent_receipt(self.contract, data)


# =============================================================================
# VALIDATION AND AMOUNTS
# =============================================================================

class ReceiptAmountsTest(SimpleTestCase):

    def test_commission_split(self):
        amounts = receipt_services.calculate_receipt_amounts(100000, 10000, 10)
        self.assertEqual(amounts.total_amount, Decimal('110000.00'))
        self.assertEqual(amounts.commission_amount, Decimal('11000.00'))
        self.assertEqual(amounts.owner_payment, Decimal('99000.00'))

    def test_default_rate(self):
        amounts = receipt_services.calculate_receipt_amounts('50000', None, None)
        self.assertEqual(amounts.commission_amount, Decimal('5000.00'))

    def test_validation_collects_every_error(self):
        with self.assertRaises(ReceiptValidationError) as raised:
            receipt_services.validate_receipt_input({'rent_amount': 0, 'period_month': 13})

        errors = raised.exception.errors
        self.assertEqual(errors['contract'], 'Contrat non trouvé')
        self.assertEqual(errors['rent_amount'], 'Montant du loyer invalide')
        self.assertEqual(errors['payment_date'], 'Veuillez sélectionner une date de paiement')
        self.assertIn('period_month', errors)
        self.assertIn('period_year', errors)
        self.assertIn('Montant du loyer invalide', str(raised.exception))


# =============================================================================
# RECEIPT SERVICE TESTS
# =============================================================================

class IssueReceiptTest(ReceiptFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_issue_receipt(self):
        receipt = self.issue(date(2025, 1, 5))

        self.assertEqual(receipt.receipt_number, 'REC-202501-0001')
        self.assertEqual((receipt.period_month, receipt.period_year), (1, 2025))
        self.assertEqual(receipt.total_amount, Decimal('160000.00'))
        self.assertEqual(receipt.commission_amount, Decimal('16000.00'))
        self.assertEqual(receipt.owner_payment, Decimal('144000.00'))
        self.assertEqual(receipt.owner, self.owner)
        self.assertEqual(receipt.tenant, self.tenant)
        self.assertEqual(receipt.get_period_label(), 'Janvier 2025')

    def test_numbering_per_period(self):
        self.issue(date(2025, 1, 5))
        second_lease = Contract.objects.create(
            agency=self.agency, property=self.property, tenant=self.tenant, contract_type='location',
            status='active', start_date=date(2025, 1, 1), monthly_rent=Decimal('80000'),
        )
        receipt = receipt_services.issue_rent_receipt(
            second_lease, {'rent_amount': 80000, 'payment_date': date(2025, 1, 10)}
        )
        self.assertEqual(receipt.receipt_number, 'REC-202501-0002')

        february = self.issue(date(2025, 2, 5))
        self.assertEqual(february.receipt_number, 'REC-202502-0001')

    def test_numbering_per_agency(self):
        self.issue(date(2025, 1, 5))
        other = Agency.objects.create(name='Autre', commercial_register='CI-ABJ-2')
        self.assertEqual(receipt_services.generate_receipt_number(2025, 1, other), 'REC-202501-0001')

    def test_explicit_period(self):
        receipt = self.issue(date(2025, 3, 2), period_month=2, period_year=2025)
        self.assertEqual(receipt.receipt_number, 'REC-202502-0001')

    def test_duplicate_period_rejected(self):
        self.issue(date(2025, 1, 5))
        with self.assertRaises(ReceiptValidationError) as raised:
            self.issue(date(2025, 1, 20))
        self.assertEqual(raised.exception.errors['period'], 'Une quittance existe déjà pour Janvier 2025')
        self.assertEqual(RentReceipt.objects.count(), 1)

    @patch('receipts.services.generate_receipt_number')
    def test_number_collision_retried(self, mock_number):
        self.issue(date(2025, 1, 5))
        mock_number.side_effect = ['REC-202501-0001', 'REC-202502-0001']

        receipt = self.issue(date(2025, 2, 5))

        self.assertEqual(receipt.receipt_number, 'REC-202502-0001')
        self.assertEqual(mock_number.call_count, 2)

    @patch('receipts.services.generate_receipt_number')
    def test_numbers_exhausted(self, mock_number):
        self.issue(date(2025, 1, 5))
        mock_number.return_value = 'REC-202501-0001'

        with self.assertRaises(ReceiptValidationError) as raised:
            self.issue(date(2025, 2, 5))

        self.assertEqual(raised.exception.errors['receipt_number'], "Impossible d'attribuer un numéro de quittance")
        self.assertEqual(mock_number.call_count, receipt_services.RECEIPT_NUMBER_ATTEMPTS)
        self.assertFalse(RentReceipt.objects.filter(period_month=2).exists())

    @patch('receipts.services.generate_receipt_number')
    def test_period_taken_while_issuing(self, mock_number):
        def concurrent_issue(period_year, period_month, agency):
            # Another request stores the same period first
            RentReceipt.objects.create(
                receipt_number='REC-202502-0001', agency=self.agency, contract=self.contract,
                tenant=self.tenant, property=self.property, owner=self.owner,
                period_month=2, period_year=2025, rent_amount=Decimal('150000'),
                total_amount=Decimal('150000'), payment_date=date(2025, 2, 4),
            )
            return 'REC-202502-0002'

        mock_number.side_effect = concurrent_issue

        with self.assertRaisesMessage(ReceiptValidationError, 'Une quittance existe déjà pour Février 2025'):
            self.issue(date(2025, 2, 5))
        self.assertEqual(RentReceipt.objects.filter(period_month=2).count(), 1)

    def test_management_contract_rejected(self):
        mandate = Contract.objects.create(
            agency=self.agency, property=self.property, contract_type='gestion', start_date=date(2025, 1, 1),
        )
        with self.assertRaises(ReceiptValidationError) as raised:
            receipt_services.issue_rent_receipt(mandate, {'rent_amount': 1000, 'payment_date': date(2025, 1, 5)})
        self.assertIn('contract', raised.exception.errors)

    def test_receipt_document(self):
        receipt = self.issue(date(2025, 1, 5), payment_method='mobile_money')
        document = receipt_services.build_receipt_document(receipt)

        self.assertEqual(document['receipt_number'], 'REC-202501-0001')
        self.assertEqual(document['period'], 'Janvier 2025')
        self.assertEqual(document['tenant']['name'], 'Ali Touré')
        self.assertEqual(document['amounts']['total'], '160 000 F CFA')
        self.assertEqual(document['payment_date'], '05/01/2025')
        self.assertEqual(document['payment_method'], 'Mobile Money')
        self.assertEqual(document['property']['address'], 'Rue des Jardins Cocody')


# =============================================================================
# REVERSAL AND STATEMENT TESTS
# =============================================================================

class OwnerReversalTest(ReceiptFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        self.issue(date(2025, 1, 5))
        self.issue(date(2025, 2, 5))
        self.issue(date(2025, 4, 5))
        FinancialTransaction.objects.create(
            agency=self.agency, entity_type='owner', owner=self.owner, type='expense',
            amount=Decimal('5000'), description='Vidange fosse', category='charge', date=date(2025, 2, 10),
        )
        FinancialTransaction.objects.create(
            agency=self.agency, entity_type='owner', owner=self.owner, type='income',
            amount=Decimal('99999'), description='Hors calcul', category='loyer', date=date(2025, 2, 10),
        )

    def test_reversal(self):
        reversal = receipt_services.calculate_owner_reversal(
            self.owner, date(2025, 1, 1), date(2025, 3, 31),
            fees=[{'description': 'Plomberie', 'amount': 20000, 'category': 'reparation', 'date': '2025-03-01'}],
        )

        self.assertEqual(reversal.payments_count, 2)
        self.assertEqual(reversal.total_rent, Decimal('320000.00'))
        self.assertEqual(reversal.total_commission, Decimal('32000.00'))
        self.assertEqual(reversal.total_fees, Decimal('25000'))
        self.assertEqual(reversal.net_amount, Decimal('263000.00'))
        self.assertEqual(len(reversal.fees), 2)

        data = reversal.to_dict()
        self.assertEqual(data['period'], {'start_date': '2025-01-01', 'end_date': '2025-03-31'})
        self.assertEqual(data['net_amount'], 263000.0)

    def test_unknown_fee_category(self):
        with self.assertRaises(ReceiptValidationError):
            receipt_services.calculate_owner_reversal(
                self.owner, date(2025, 1, 1), date(2025, 3, 31),
                fees=[{'description': 'Commission', 'amount': 1, 'category': 'commission'}],
            )

    def test_owner_statement(self):
        statement = receipt_services.generate_owner_statement(self.owner, date(2025, 1, 1), date(2025, 3, 31))

        self.assertEqual(statement.entity_type, 'owner')
        self.assertEqual(statement.summary['total_income'], 320000.0)
        self.assertEqual(statement.summary['total_expenses'], 37000.0)
        self.assertEqual(statement.summary['balance'], 283000.0)
        self.assertEqual(statement.summary['pending_payments'], 150000.0)
        self.assertEqual(len(statement.transactions), 3)

    def test_tenant_statement(self):
        statement = receipt_services.generate_tenant_statement(self.tenant, date(2025, 1, 1), date(2025, 4, 30))

        self.assertEqual(statement.summary['total_income'], 480000.0)
        self.assertEqual(statement.summary['pending_payments'], 150000.0)
        self.assertEqual(statement.summary['balance'], -150000.0)
        pending = [line for line in statement.transactions if line['type'] == 'pending']
        self.assertEqual([line['description'] for line in pending], ['Loyer impayé Mars 2025'])


# =============================================================================
# API TESTS
# =============================================================================

class ReceiptsAPITestCase(ReceiptFixtureMixin, APITestCase):

    def setUp(self):
        self.create_fixtures()
        self.user = User.objects.create_user(username='agent', password='pass12345')
        AgencyUser.objects.create(user=self.user, agency=self.agency, role='agent')
        self.client.force_authenticate(user=self.user)


class RentReceiptAPITest(ReceiptsAPITestCase):

    def test_issue_receipt(self):
        data = {
            'contract': self.contract.pk,
            'rent_amount': '150000',
            'charges': '10000',
            'payment_date': '2025-01-05',
            'payment_method': 'virement',
        }
        response = self.client.post(reverse('receipt-list'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['receipt_number'], 'REC-202501-0001')
        receipt = RentReceipt.objects.get(pk=response.data['id'])
        self.assertEqual(receipt.issued_by, self.user)

    def test_invalid_receipt_reports_every_error(self):
        response = self.client.post(reverse('receipt-list'), {'rent_amount': '0'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['details']['contract'], 'Contrat non trouvé')
        self.assertIn('rent_amount', response.data['details'])
        self.assertIn('payment_date', response.data['details'])

    def test_duplicate_period(self):
        self.issue(date(2025, 1, 5))
        data = {'contract': self.contract.pk, 'rent_amount': '150000', 'payment_date': '2025-01-28'}
        response = self.client.post(reverse('receipt-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('period', response.data['details'])

    def test_contract_of_other_agency(self):
        other = User.objects.create_user(username='other', password='pass12345')
        other_agency = Agency.objects.create(name='Autre', commercial_register='CI-ABJ-2')
        AgencyUser.objects.create(user=other, agency=other_agency, role='agent')
        self.client.force_authenticate(user=other)

        data = {'contract': self.contract.pk, 'rent_amount': '150000', 'payment_date': '2025-01-05'}
        response = self.client.post(reverse('receipt-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(RentReceipt.objects.exists())

    def test_receipts_not_editable(self):
        receipt = self.issue(date(2025, 1, 5))
        response = self.client.patch(reverse('receipt-detail', args=[receipt.pk]), {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_document(self):
        receipt = self.issue(date(2025, 1, 5))
        response = self.client.get(reverse('receipt-document', args=[receipt.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['agency']['name'], 'Immo Plus')

    def test_filter_by_period(self):
        self.issue(date(2025, 1, 5))
        self.issue(date(2025, 2, 5))
        response = self.client.get(reverse('receipt-list'), {'period_month': 2, 'period_year': 2025})
        self.assertEqual(response.data['count'], 1)


class TransactionAPITest(ReceiptsAPITestCase):

    def test_create_owner_expense(self):
        data = {
            'entity_type': 'owner',
            'owner': self.owner.pk,
            'type': 'expense',
            'amount': '15000',
            'description': 'Peinture',
            'category': 'reparation',
            'date': '2025-02-01',
        }
        response = self.client.post(reverse('transaction-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['agency'], self.agency.pk)

    def test_owner_expense_category_checked(self):
        data = {
            'entity_type': 'owner',
            'owner': self.owner.pk,
            'type': 'expense',
            'amount': '15000',
            'description': 'Commission',
            'category': 'commission',
            'date': '2025-02-01',
        }
        response = self.client.post(reverse('transaction-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('category', response.data)

    def test_tenant_required(self):
        data = {'entity_type': 'tenant', 'type': 'income', 'amount': '1000', 'description': 'x', 'date': '2025-02-01'}
        response = self.client.post(reverse('transaction-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('tenant', response.data)


class StatementAPITest(ReceiptsAPITestCase):

    def setUp(self):
        super().setUp()
        self.issue(date(2025, 1, 5))

    def test_owner_reversal(self):
        data = {
            'owner': self.owner.pk,
            'start_date': '2025-01-01',
            'end_date': '2025-01-31',
            'fees': [{'description': 'Serrure', 'amount': '6000', 'category': 'reparation'}],
        }
        response = self.client.post(reverse('statement-owner-reversal'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['net_amount'], 138000.0)
        self.assertFalse(FinancialStatement.objects.exists())

    def test_generate_owner_statement(self):
        data = {'owner': self.owner.pk, 'start_date': '2025-01-01', 'end_date': '2025-01-31'}
        response = self.client.post(reverse('statement-generate-owner'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['summary']['balance'], 144000.0)

    def test_generate_tenant_statement(self):
        data = {'tenant': self.tenant.pk, 'start_date': '2025-01-01', 'end_date': '2025-02-28'}
        response = self.client.post(reverse('statement-generate-tenant'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['summary']['pending_payments'], 150000.0)

        response = self.client.get(reverse('statement-list'))
        self.assertEqual(response.data['count'], 1)

    def test_missing_entity(self):
        data = {'start_date': '2025-01-01', 'end_date': '2025-01-31'}
        response = self.client.post(reverse('statement-generate-owner'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_entity(self):
        data = {'tenant': 999999, 'start_date': '2025-01-01', 'end_date': '2025-01-31'}
        response = self.client.post(reverse('statement-generate-tenant'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_period_order(self):
        data = {'owner': self.owner.pk, 'start_date': '2025-02-01', 'end_date': '2025-01-01'}
        response = self.client.post(reverse('statement-owner-reversal'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('end_date', response.data)
