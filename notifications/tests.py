# ===== NOTIFICATIONS APP TEST SUITE =====
"""
Test suite for notifications app functionality
File: notifications/tests.py

Test Coverage:
- Audit trail written by the model signals
- Notifications and e-mails queued on receipts and contracts
- Payment reminder wording, windows and de-duplication
- Payment reminder and expiry reruns for the same date
- Contract expiry warnings
- Notification settings gating notifications and tenant e-mails
- E-mail queue delivery
- API endpoints for notifications, e-mails and audit logs
"""

from datetime import date, timedelta
from decimal import Decimal
from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core import mail
from django.core.management import call_command
from django.test import SimpleTestCase, TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from agencies.models import Agency, AgencyUser, PlatformAdmin
from contracts.models import Contract
from properties.models import Owner, Property, Tenant
from receipts.services import issue_rent_receipt

from .models import NOTIFICATION_SETTING_FIELDS, AuditLog, EmailNotification, Notification, NotificationSettings
from . import services as notification_services

User = get_user_model()


class NotificationFixtureMixin:
    """Agency with two members and a rental contract starting on the 10th"""

    def create_fixtures(self, start_date=date(2025, 1, 10), tenant_email='ali@example.ci'):
        self.agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')
        self.director = User.objects.create_user(username='director', password='pass12345')
        AgencyUser.objects.create(user=self.director, agency=self.agency, role='director')
        self.agent = User.objects.create_user(username='agent', password='pass12345')
        AgencyUser.objects.create(user=self.agent, agency=self.agency, role='agent')

        self.owner = Owner.objects.create(
            agency=self.agency, first_name='Awa', last_name='Koné', phone='0707070707'
        )
        self.tenant = Tenant.objects.create(
            agency=self.agency, first_name='Ali', last_name='Touré', phone='0505050505', email=tenant_email
        )
        self.property = Property.objects.create(agency=self.agency, owner=self.owner, title='Villa Cocody')
        self.contract = Contract.objects.create(
            agency=self.agency,
            property=self.property,
            tenant=self.tenant,
            contract_type='location',
            status='active',
            start_date=start_date,
            end_date=start_date + timedelta(days=364),
            monthly_rent=Decimal('150000'),
        )


# =============================================================================
# AUDIT TRAIL TESTS
# =============================================================================

class AuditTrailTest(TestCase):

    def setUp(self):
        self.agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')

    def test_insert_update_delete(self):
        owner = Owner.objects.create(agency=self.agency, first_name='Awa', last_name='Koné', phone='0707070707')
        owner.city = 'Bouaké'
        owner.save()
        owner_id = owner.pk
        owner.delete()

        logs = AuditLog.objects.filter(table_name='owners', record_id=str(owner_id)).order_by('pk')
        self.assertEqual([log.action for log in logs], ['INSERT', 'UPDATE', 'DELETE'])

        insert, update, delete = logs
        self.assertIsNone(insert.old_values)
        self.assertEqual(insert.new_values['last_name'], 'Koné')
        self.assertEqual(update.old_values['city'], '')
        self.assertEqual(update.new_values['city'], 'Bouaké')
        self.assertEqual(delete.old_values['id'], owner_id)
        self.assertIsNone(delete.new_values)
        self.assertEqual(insert.agency_id, self.agency.pk)

    def test_agency_changes_audited(self):
        self.assertTrue(
            AuditLog.objects.filter(table_name='agencies', action='INSERT', agency_id=self.agency.pk).exists()
        )

        agency_id = self.agency.pk
        self.agency.delete()
        delete = AuditLog.objects.get(table_name='agencies', action='DELETE', record_id=str(agency_id))
        self.assertIsNone(delete.agency_id)

    def test_values_are_json_safe(self):
        owner = Owner.objects.create(agency=self.agency, first_name='Awa', last_name='Koné', phone='0707070707')
        prop = Property.objects.create(agency=self.agency, owner=owner, title='Villa', monthly_rent=Decimal('150000'))
        log = AuditLog.objects.get(table_name='properties', record_id=str(prop.pk))
        self.assertEqual(log.new_values['monthly_rent'], '150000')


# =============================================================================
# SIGNAL NOTIFICATION TESTS
# =============================================================================

class RecordNotificationTest(NotificationFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_new_contract_email(self):
        email = EmailNotification.objects.get(type='new_contract')
        self.assertEqual(email.recipient_email, 'ali@example.ci')
        self.assertEqual(email.subject, 'Nouveau contrat - Villa Cocody')
        self.assertIn('10/01/2025', email.content)

    def test_contract_without_tenant_email(self):
        silent = Tenant.objects.create(agency=self.agency, first_name='Fanta', last_name='Cissé', phone='0101010101')
        Contract.objects.create(
            agency=self.agency, property=self.property, tenant=silent, contract_type='location',
            start_date=date(2025, 2, 1), monthly_rent=Decimal('90000'),
        )
        self.assertEqual(EmailNotification.objects.filter(type='new_contract').count(), 1)

    def test_receipt_notifies_team_and_tenant(self):
        receipt = issue_rent_receipt(
            self.contract, {'rent_amount': Decimal('150000'), 'payment_date': date(2025, 1, 10)}
        )

        alerts = Notification.objects.filter(type='rental_alert')
        self.assertEqual({alert.user for alert in alerts}, {self.director, self.agent})
        self.assertEqual(alerts[0].title, 'Quittance générée: Ali Touré')
        self.assertEqual(alerts[0].data['receipt_id'], receipt.pk)

        email = EmailNotification.objects.get(type='receipt_generated')
        self.assertEqual(email.subject, f'Quittance de loyer Janvier 2025 - {receipt.receipt_number}')
        self.assertIn('150 000 F CFA', email.content)


# =============================================================================
# PAYMENT REMINDER TESTS
# =============================================================================

class ReminderTextTest(SimpleTestCase):

    def test_upcoming(self):
        title, message = notification_services.build_reminder_text('Awa Koné', 3, date(2025, 1, 5))
        self.assertEqual(title, 'Rappel Paiement: Awa Koné')
        self.assertEqual(message, 'Le loyer de Awa Koné arrive à échéance dans 3 jours (le 05/01/2025).')

    def test_due_today(self):
        title, _ = notification_services.build_reminder_text('Awa Koné', 0, date(2025, 1, 5))
        self.assertEqual(title, "Loyer dû aujourd'hui: Awa Koné")

    def test_overdue(self):
        title, message = notification_services.build_reminder_text('Awa Koné', -4, date(2025, 1, 5))
        self.assertEqual(title, 'Retard Paiement: Awa Koné')
        self.assertIn('en retard de 4 jours', message)


class PaymentReminderTest(NotificationFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def reminders(self):
        return Notification.objects.filter(type='payment_reminder')

    def test_reminder_within_window(self):
        created = notification_services.check_and_send_reminders(self.agency, today=date(2025, 1, 7))

        self.assertEqual(created, 2)
        reminder = self.reminders().first()
        self.assertEqual(reminder.title, 'Rappel Paiement: Ali Touré')
        self.assertEqual(reminder.priority, 'medium')
        self.assertEqual(reminder.data['contract_id'], self.contract.pk)

        email = EmailNotification.objects.get(type='payment_reminder')
        self.assertEqual(email.subject, 'Rappel de loyer - Janvier 2025')
        self.assertIn('150 000 F CFA', email.content)

    def test_no_reminder_too_early(self):
        self.assertEqual(notification_services.check_and_send_reminders(self.agency, today=date(2025, 1, 3)), 0)
        self.assertFalse(EmailNotification.objects.filter(type='payment_reminder').exists())

    def test_overdue_reminder(self):
        notification_services.check_and_send_reminders(self.agency, today=date(2025, 1, 15))
        reminder = self.reminders().first()
        self.assertEqual(reminder.title, 'Retard Paiement: Ali Touré')
        self.assertEqual(reminder.priority, 'high')

    def test_no_reminder_when_month_receipted(self):
        issue_rent_receipt(self.contract, {'rent_amount': Decimal('150000'), 'payment_date': date(2025, 1, 8)})
        self.assertEqual(notification_services.check_and_send_reminders(self.agency, today=date(2025, 1, 9)), 0)

    def test_inactive_contract_ignored(self):
        self.contract.status = 'terminated'
        self.contract.save()
        self.assertEqual(notification_services.check_and_send_reminders(self.agency, today=date(2025, 1, 9)), 0)

    def test_once_per_day(self):
        today = date.today()
        self.contract.start_date = today
        self.contract.save()

        self.assertEqual(notification_services.check_and_send_reminders(self.agency, today=today), 2)
        self.assertEqual(notification_services.check_and_send_reminders(self.agency, today=today), 0)
        self.assertEqual(self.reminders().first().title, "Loyer dû aujourd'hui: Ali Touré")
        self.assertEqual(EmailNotification.objects.filter(type='payment_reminder').count(), 1)

    def test_command(self):
        out = StringIO()
        call_command('send_payment_reminders', '--date', '2025-01-07', stdout=out)
        self.assertIn('2 reminders created', out.getvalue())

    def test_rerun_for_given_date(self):
        self.assertEqual(notification_services.check_and_send_reminders(self.agency, today=date(2025, 1, 7)), 2)
        self.assertEqual(notification_services.check_and_send_reminders(self.agency, today=date(2025, 1, 7)), 0)
        self.assertEqual(EmailNotification.objects.filter(type='payment_reminder').count(), 1)
        self.assertEqual(self.reminders().first().data['notice_date'], '2025-01-07')

        self.assertEqual(notification_services.check_and_send_reminders(self.agency, today=date(2025, 1, 8)), 2)
        self.assertEqual(EmailNotification.objects.filter(type='payment_reminder').count(), 2)

    def test_command_rerun(self):
        call_command('send_payment_reminders', '--date', '2025-01-07', stdout=StringIO())
        out = StringIO()
        call_command('send_payment_reminders', '--date', '2025-01-07', stdout=out)
        self.assertIn('0 reminders created', out.getvalue())
        self.assertEqual(self.reminders().count(), 2)


class ContractExpiryTest(NotificationFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_expiry_warning(self):
        today = self.contract.end_date - timedelta(days=20)
        created = notification_services.check_contract_expiry(self.agency, today=today)

        self.assertEqual(created, 2)
        warning = Notification.objects.filter(type='contract_expiry').first()
        self.assertEqual(warning.title, 'Expiration de contrat: Villa Cocody')
        self.assertIn('dans 20 jours', warning.message)
        self.assertEqual(warning.priority, 'medium')

    def test_outside_window(self):
        today = self.contract.end_date - timedelta(days=45)
        self.assertEqual(notification_services.check_contract_expiry(self.agency, today=today), 0)
        self.assertEqual(notification_services.check_contract_expiry(self.agency, today=today, days=60), 2)

    def test_close_expiry_is_high_priority(self):
        notification_services.check_contract_expiry(self.agency, today=self.contract.end_date - timedelta(days=3))
        self.assertEqual(Notification.objects.filter(type='contract_expiry').first().priority, 'high')

    def test_rerun_for_given_date(self):
        today = self.contract.end_date - timedelta(days=20)
        self.assertEqual(notification_services.check_contract_expiry(self.agency, today=today), 2)
        self.assertEqual(notification_services.check_contract_expiry(self.agency, today=today), 0)

    def test_command(self):
        self.contract.end_date = date.today() + timedelta(days=10)
        self.contract.save()

        out = StringIO()
        call_command('check_contract_expiry', '--days', '15', stdout=out)
        self.assertIn('2 contract expiry notifications created', out.getvalue())


# =============================================================================
# NOTIFICATION SETTINGS TESTS
# =============================================================================

class NotificationSettingsTest(NotificationFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_defaults_allow_everything(self):
        preferences = notification_services.get_notification_settings(self.agent)
        self.assertIsNone(preferences.pk)
        for field in NOTIFICATION_SETTING_FIELDS:
            self.assertTrue(preferences.allows(field))
        self.assertTrue(preferences.allows('system'))

    def test_update_ignores_unknown_keys(self):
        preferences = notification_services.update_notification_settings(
            self.agent, new_message=False, colour='blue'
        )
        self.assertFalse(preferences.new_message)
        self.assertTrue(preferences.payment_reminder)

        notification_services.update_notification_settings(self.agent, new_message=True)
        self.assertEqual(NotificationSettings.objects.filter(user=self.agent).count(), 1)
        self.assertTrue(NotificationSettings.objects.get(user=self.agent).new_message)

    def test_muted_type_skipped(self):
        notification_services.update_notification_settings(self.agent, property_update=False)

        self.assertEqual(notification_services.notify_agency_users(self.agency, 'property_update', 'T', 'M'), 1)
        self.assertEqual(notification_services.notify_agency_users(self.agency, 'new_message', 'T', 'M'), 2)
        self.assertFalse(Notification.objects.filter(user=self.agent, type='property_update').exists())

    def test_muted_reminders(self):
        notification_services.update_notification_settings(self.agent, payment_reminder=False)

        created = notification_services.check_and_send_reminders(self.agency, today=date(2025, 1, 7))

        self.assertEqual(created, 1)
        self.assertEqual(Notification.objects.get(type='payment_reminder').user, self.director)
        # Agent preferences do not affect e-mails to the tenant
        self.assertEqual(EmailNotification.objects.filter(type='payment_reminder').count(), 1)

    def test_muted_expiry(self):
        notification_services.update_notification_settings(self.director, contract_expiry=False)
        today = self.contract.end_date - timedelta(days=20)
        self.assertEqual(notification_services.check_contract_expiry(self.agency, today=today), 1)

    def test_director_mutes_tenant_emails(self):
        notification_services.update_notification_settings(self.director, rental_alert=False)

        issue_rent_receipt(self.contract, {'rent_amount': Decimal('150000'), 'payment_date': date(2025, 1, 10)})

        self.assertFalse(EmailNotification.objects.filter(type='receipt_generated').exists())
        alerts = Notification.objects.filter(type='rental_alert')
        self.assertEqual([alert.user for alert in alerts], [self.agent])

    def test_director_mutes_reminder_emails(self):
        notification_services.update_notification_settings(self.director, payment_reminder=False)
        notification_services.check_and_send_reminders(self.agency, today=date(2025, 1, 7))
        self.assertFalse(EmailNotification.objects.filter(type='payment_reminder').exists())

    def test_email_types_without_preference(self):
        notification_services.update_notification_settings(
            self.director, **{field: False for field in NOTIFICATION_SETTING_FIELDS}
        )
        email = notification_services.queue_email(self.agency, 'new_user', 'new@example.ci', 'Bienvenue', 'Contenu')
        self.assertIsNotNone(email)


# =============================================================================
# E-MAIL DELIVERY TESTS
# =============================================================================

class EmailDeliveryTest(NotificationFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_send_pending(self):
        results = notification_services.send_pending_emails()

        self.assertEqual(results, {'sent': 1, 'failed': 0})
        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].to, ['ali@example.ci'])
        email = EmailNotification.objects.get(type='new_contract')
        self.assertEqual(email.status, 'sent')
        self.assertIsNotNone(email.sent_at)

        self.assertEqual(notification_services.send_pending_emails(), {'sent': 0, 'failed': 0})

    @patch('notifications.services.send_mail')
    def test_failure_recorded(self, mock_send_mail):
        mock_send_mail.side_effect = ConnectionRefusedError('SMTP down')

        results = notification_services.send_pending_emails()

        self.assertEqual(results, {'sent': 0, 'failed': 1})
        email = EmailNotification.objects.get(type='new_contract')
        self.assertEqual(email.status, 'failed')
        self.assertEqual(email.error_message, 'SMTP down')

    def test_queue_email_needs_recipient(self):
        self.assertIsNone(notification_services.queue_email(self.agency, 'system', '', 'Sujet', 'Contenu'))

    def test_command(self):
        out = StringIO()
        call_command('send_pending_emails', '--limit', '10', stdout=out)
        self.assertIn('Sent:   1', out.getvalue())


# =============================================================================
# API TESTS
# =============================================================================

class NotificationAPITest(NotificationFixtureMixin, APITestCase):

    def setUp(self):
        self.create_fixtures()
        notification_services.notify_agency_users(self.agency, 'property_update', 'Titre', 'Message')
        notification_services.notify_agency_users(self.agency, 'new_message', 'Titre 2', 'Message 2', priority='high')
        self.client.force_authenticate(user=self.agent)

    def test_list_own_notifications(self):
        response = self.client.get(reverse('notification-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

    def test_filter_by_type(self):
        response = self.client.get(reverse('notification-list'), {'type': 'new_message'})
        self.assertEqual(response.data['count'], 1)

    def test_mark_read(self):
        notification = Notification.objects.filter(user=self.agent).first()
        response = self.client.post(reverse('notification-mark-read', args=[notification.pk]))
        self.assertTrue(response.data['is_read'])

        response = self.client.get(reverse('notification-unread-count'))
        self.assertEqual(response.data['count'], 1)

    def test_mark_all_read(self):
        response = self.client.post(reverse('notification-mark-all-read'))
        self.assertEqual(response.data['updated'], 2)
        self.assertEqual(Notification.objects.filter(user=self.director, is_read=False).count(), 2)

    def test_cannot_read_others_notifications(self):
        other = Notification.objects.filter(user=self.director).first()
        response = self.client.get(reverse('notification-detail', args=[other.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_email_queue_read_only(self):
        response = self.client.get(reverse('email-notification-list'))
        self.assertEqual(response.data['count'], 1)
        response = self.client.post(reverse('email-notification-list'), {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_settings_default(self):
        response = self.client.get(reverse('notification-settings'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['payment_reminder'])
        self.assertTrue(response.data['new_interest'])

    def test_update_settings(self):
        response = self.client.patch(reverse('notification-settings'), {'new_message': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['new_message'])
        self.assertTrue(response.data['rental_alert'])
        self.assertFalse(NotificationSettings.objects.get(user=self.agent).new_message)

        notification_services.notify_agency_users(self.agency, 'new_message', 'Titre 3', 'Message 3')
        response = self.client.get(reverse('notification-list'), {'type': 'new_message'})
        self.assertEqual(response.data['count'], 1)

    def test_settings_require_authentication(self):
        self.client.force_authenticate(user=None)
        response = self.client.get(reverse('notification-settings'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AuditLogAPITest(NotificationFixtureMixin, APITestCase):

    def setUp(self):
        self.create_fixtures()
        self.other_agency = Agency.objects.create(name='Autre Agence', commercial_register='CI-ABJ-2')

    def test_agents_forbidden(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('audit-log-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_director_sees_own_agency(self):
        self.client.force_authenticate(user=self.director)
        response = self.client.get(reverse('audit-log-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(
            [item for item in response.data['results'] if item['record_id'] == str(self.other_agency.pk)
             and item['table_name'] == 'agencies']
        )

    def test_api_changes_record_user(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.post(
            reverse('owner-list'),
            {'first_name': 'Mariam', 'last_name': 'Ouattara', 'phone': '0711223344'},
            format='json',
            HTTP_USER_AGENT='test-agent',
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

        log = AuditLog.objects.get(table_name='owners', action='INSERT', record_id=str(response.data['id']))
        self.assertEqual(log.user, self.agent)
        self.assertEqual(log.ip_address, '127.0.0.1')
        self.assertEqual(log.user_agent, 'test-agent')

    def test_platform_admin_sees_all(self):
        admin = User.objects.create_user(username='admin', password='pass12345')
        PlatformAdmin.objects.create(user=admin)
        self.client.force_authenticate(user=admin)
        response = self.client.get(reverse('audit-log-list'), {'table_name': 'agencies'})
        self.assertEqual(response.data['count'], 2)
