# ===== COLLABORATION APP TEST SUITE =====
"""
Test suite for collaboration app functionality
File: collaboration/tests.py

Test Coverage:
- Announcement visibility across agencies, expiry and view counting
- Interests: creation rules, notifications and review by the publisher
- Messages: sending, notification, mailbox filters and read state
- Notification settings honoured by collaboration notifications
- expire_announcements management command
"""

from datetime import timedelta
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from agencies.models import Agency, AgencyUser
from notifications.models import Notification
from notifications.services import update_notification_settings
from properties.models import Owner, Property
from services import BusinessLogicError

from .models import Announcement, AnnouncementInterest, Message
from . import services as collaboration_services

User = get_user_model()


class CollaborationFixtureMixin:
    """Publishing agency with two members, a second agency with one member"""

    def create_fixtures(self):
        self.agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')
        self.director = User.objects.create_user(username='director', password='pass12345')
        AgencyUser.objects.create(user=self.director, agency=self.agency, role='director')
        self.agent = User.objects.create_user(username='agent', password='pass12345')
        AgencyUser.objects.create(user=self.agent, agency=self.agency, role='agent')

        self.partner_agency = Agency.objects.create(name='Partenaire Immo', commercial_register='CI-ABJ-2')
        self.partner = User.objects.create_user(
            username='partner', password='pass12345', first_name='Koffi', last_name='Yao'
        )
        AgencyUser.objects.create(user=self.partner, agency=self.partner_agency, role='agent')

        self.owner = Owner.objects.create(
            agency=self.agency, first_name='Awa', last_name='Koné', phone='0707070707'
        )
        self.property = Property.objects.create(
            agency=self.agency, owner=self.owner, title='Villa Cocody', location={'commune': 'Cocody'}
        )
        self.announcement = Announcement.objects.create(
            agency=self.agency,
            property=self.property,
            title='Villa 4 pièces à louer',
            description='Villa avec jardin',
            type='location',
        )


# =============================================================================
# SERVICE TESTS
# =============================================================================

class InterestServiceTest(CollaborationFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_interest_notifies_publisher(self):
        interest = collaboration_services.express_interest(
            self.announcement, self.partner, self.partner_agency, 'Client intéressé'
        )

        self.assertEqual(interest.status, 'pending')
        alerts = Notification.objects.filter(type='new_interest')
        self.assertEqual({alert.user for alert in alerts}, {self.director, self.agent})
        self.assertEqual(alerts[0].title, 'Nouvel intérêt: Villa 4 pièces à louer')
        self.assertEqual(alerts[0].data['interest_id'], interest.pk)

    def test_muted_interest_notifications(self):
        update_notification_settings(self.agent, new_interest=False)
        collaboration_services.express_interest(self.announcement, self.partner, self.partner_agency)
        self.assertEqual(
            list(Notification.objects.filter(type='new_interest').values_list('user', flat=True)),
            [self.director.pk]
        )

    def test_own_announcement_rejected(self):
        with self.assertRaises(BusinessLogicError):
            collaboration_services.express_interest(self.announcement, self.agent, self.agency)

    def test_expired_announcement_rejected(self):
        self.announcement.expires_at = timezone.now() - timedelta(days=1)
        self.announcement.save()
        with self.assertRaises(BusinessLogicError):
            collaboration_services.express_interest(self.announcement, self.partner, self.partner_agency)

    def test_interest_once_per_user(self):
        collaboration_services.express_interest(self.announcement, self.partner, self.partner_agency)
        with self.assertRaises(BusinessLogicError):
            collaboration_services.express_interest(self.announcement, self.partner, self.partner_agency)

    def test_review_notifies_interested_user(self):
        interest = collaboration_services.express_interest(self.announcement, self.partner, self.partner_agency)

        collaboration_services.review_interest(interest, 'approved')

        self.assertEqual(interest.status, 'approved')
        reply = Notification.objects.get(user=self.partner)
        self.assertEqual(reply.title, 'Demande acceptée: Villa 4 pièces à louer')
        self.assertEqual(reply.priority, 'high')

        with self.assertRaises(BusinessLogicError):
            collaboration_services.review_interest(interest, 'rejected')

    def test_deactivate_expired(self):
        self.announcement.expires_at = timezone.now() - timedelta(hours=1)
        self.announcement.save()
        Announcement.objects.create(
            agency=self.agency, property=self.property, title='Sans expiration',
            description='-', type='location',
        )

        self.assertEqual(collaboration_services.deactivate_expired_announcements(), 1)
        self.announcement.refresh_from_db()
        self.assertFalse(self.announcement.is_active)

    def test_expire_command(self):
        self.announcement.expires_at = timezone.now() - timedelta(hours=1)
        self.announcement.save()
        out = StringIO()
        call_command('expire_announcements', stdout=out)
        self.assertIn('1 announcements deactivated', out.getvalue())


class MessageServiceTest(CollaborationFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_send_notifies_receiver(self):
        message = collaboration_services.send_message(
            self.partner, self.agent, 'Visite', 'Disponible samedi ?',
            agency=self.partner_agency, announcement=self.announcement,
        )

        self.assertEqual(message.attachments, [])
        notification = Notification.objects.get(user=self.agent, type='new_message')
        self.assertEqual(notification.title, 'Nouveau message: Visite')
        self.assertEqual(notification.message, 'Koffi Yao vous a envoyé un message.')

    def test_muted_receiver(self):
        update_notification_settings(self.agent, new_message=False)
        collaboration_services.send_message(self.partner, self.agent, 'Visite', 'Samedi ?')
        self.assertEqual(Message.objects.count(), 1)
        self.assertFalse(Notification.objects.filter(type='new_message').exists())

    def test_cannot_write_to_self(self):
        with self.assertRaises(BusinessLogicError):
            collaboration_services.send_message(self.agent, self.agent, 'Note', 'Moi')


# =============================================================================
# API TESTS
# =============================================================================

class AnnouncementAPITest(CollaborationFixtureMixin, APITestCase):

    def setUp(self):
        self.create_fixtures()
        self.client.force_authenticate(user=self.partner)

    def test_visible_to_other_agencies(self):
        Announcement.objects.create(
            agency=self.agency, property=self.property, title='Inactive', description='-',
            type='location', is_active=False,
        )
        response = self.client.get(reverse('announcement-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['commune'], 'Cocody')
        self.assertFalse(response.data['results'][0]['is_own'])

        self.client.force_authenticate(user=self.agent)
        self.assertEqual(self.client.get(reverse('announcement-list')).data['count'], 2)

    def test_mine_filter(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('announcement-list'), {'mine': 'true'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(reverse('announcement-list'), {'mine': 'false'})
        self.assertEqual(response.data['count'], 0)

    def test_views_counted_for_other_agencies(self):
        url = reverse('announcement-detail', args=[self.announcement.pk])
        self.assertEqual(self.client.get(url).data['views'], 1)

        self.client.force_authenticate(user=self.agent)
        self.assertEqual(self.client.get(url).data['views'], 1)

    def test_create_announcement(self):
        self.client.force_authenticate(user=self.agent)
        data = {
            'property': self.property.pk,
            'title': 'Villa meublée',
            'description': 'Proche du lycée',
            'type': 'location',
            'expires_at': (timezone.now() + timedelta(days=30)).isoformat(),
        }
        response = self.client.post(reverse('announcement-list'), data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['agency'], self.agency.pk)
        self.assertEqual(Announcement.objects.get(pk=response.data['id']).created_by, self.agent)

    def test_sale_requires_property_for_sale(self):
        self.client.force_authenticate(user=self.agent)
        data = {'property': self.property.pk, 'title': 'A vendre', 'description': '-', 'type': 'vente'}
        response = self.client.post(reverse('announcement-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('type', response.data)

    def test_other_agency_property_rejected(self):
        data = {'property': self.property.pk, 'title': 'Pas à moi', 'description': '-', 'type': 'location'}
        response = self.client.post(reverse('announcement-list'), data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('property', response.data)

    def test_only_publisher_edits(self):
        url = reverse('announcement-detail', args=[self.announcement.pk])
        response = self.client.patch(url, {'title': 'Piraté'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(url)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.agent)
        response = self.client.patch(url, {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_express_interest(self):
        url = reverse('announcement-interest', args=[self.announcement.pk])
        response = self.client.post(url, {'message': 'Client sérieux'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['agency'], self.partner_agency.pk)
        self.assertEqual(response.data['status'], 'pending')

        response = self.client.post(url, {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_interests_listed_for_publisher_only(self):
        collaboration_services.express_interest(self.announcement, self.partner, self.partner_agency)
        url = reverse('announcement-interests', args=[self.announcement.pk])

        self.assertEqual(self.client.get(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.director)
        response = self.client.get(url)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['agency_name'], 'Partenaire Immo')


class AnnouncementInterestAPITest(CollaborationFixtureMixin, APITestCase):

    def setUp(self):
        self.create_fixtures()
        self.interest = collaboration_services.express_interest(
            self.announcement, self.partner, self.partner_agency
        )

    def test_direction_filter(self):
        self.client.force_authenticate(user=self.partner)
        response = self.client.get(reverse('announcement-interest-list'), {'direction': 'sent'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(reverse('announcement-interest-list'), {'direction': 'received'})
        self.assertEqual(response.data['count'], 0)

    def test_publisher_approves(self):
        self.client.force_authenticate(user=self.director)
        response = self.client.post(reverse('announcement-interest-approve', args=[self.interest.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')

        response = self.client.post(reverse('announcement-interest-reject', args=[self.interest.pk]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_interested_agency_cannot_review(self):
        self.client.force_authenticate(user=self.partner)
        response = self.client.post(reverse('announcement-interest-approve', args=[self.interest.pk]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_withdraw_pending_interest(self):
        url = reverse('announcement-interest-detail', args=[self.interest.pk])

        self.client.force_authenticate(user=self.director)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.partner)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(AnnouncementInterest.objects.exists())


class MessageAPITest(CollaborationFixtureMixin, APITestCase):

    def setUp(self):
        self.create_fixtures()
        self.client.force_authenticate(user=self.partner)

    def send(self, **overrides):
        payload = {
            'receiver': self.agent.pk,
            'subject': 'Visite',
            'content': 'Disponible samedi ?',
            'announcement': self.announcement.pk,
            'attachments': ['https://example.ci/plan.pdf'],
        }
        payload.update(overrides)
        return self.client.post(reverse('message-list'), payload, format='json')

    def test_send_message(self):
        response = self.send()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['sender'], self.partner.pk)
        self.assertEqual(response.data['agency'], self.partner_agency.pk)
        self.assertEqual(response.data['sender_name'], 'Koffi Yao')
        self.assertTrue(Notification.objects.filter(user=self.agent, type='new_message').exists())

    def test_receiver_must_be_agency_member(self):
        outsider = User.objects.create_user(username='outsider', password='pass12345')
        response = self.send(receiver=outsider.pk)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('receiver', response.data)

    def test_cannot_write_to_self(self):
        response = self.send(receiver=self.partner.pk)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_attachments_must_be_urls(self):
        response = self.send(attachments={'plan': 'x'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('attachments', response.data)

    def test_mailboxes(self):
        self.send()
        response = self.client.get(reverse('message-list'), {'box': 'sent'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(reverse('message-list'), {'box': 'inbox'})
        self.assertEqual(response.data['count'], 0)

        self.client.force_authenticate(user=self.director)
        self.assertEqual(self.client.get(reverse('message-list')).data['count'], 0)

    def test_mark_read_by_receiver(self):
        message_id = self.send().data['id']

        response = self.client.post(reverse('message-mark-read', args=[message_id]))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.agent)
        self.assertEqual(self.client.get(reverse('message-unread-count')).data['count'], 1)
        response = self.client.post(reverse('message-mark-read', args=[message_id]))
        self.assertTrue(response.data['is_read'])
        self.assertEqual(self.client.get(reverse('message-unread-count')).data['count'], 0)

    def test_only_sender_deletes(self):
        message_id = self.send().data['id']
        url = reverse('message-detail', args=[message_id])

        self.client.force_authenticate(user=self.agent)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(user=self.partner)
        self.assertEqual(self.client.delete(url).status_code, status.HTTP_204_NO_CONTENT)
