# ===== AGENCIES APP TEST SUITE =====
"""
Test suite for the agencies app
File: agencies/tests.py

Test Coverage:
- Agency, membership and permission model behaviour
- Registration approval and rejection
- Subscription extension, suspension and reactivation
- Deterministic yearly rankings
- Platform settings and data export
- API scoping, platform-admin only actions and maintenance mode
"""

from datetime import date, timedelta
from decimal import Decimal
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from properties.models import Owner, Property, Tenant
from services import RegistrationApprovalError, SubscriptionError

from .models import (
    Agency,
    AgencyRanking,
    AgencyRegistrationRequest,
    AgencySubscription,
    AgencyUser,
    PlatformAdmin,
    PlatformSetting,
    SubscriptionPayment,
    PERMISSION_KEYS,
    get_user_agency_membership,
    is_platform_admin,
)
from . import services as agency_services

User = get_user_model()


# =============================================================================
# MODEL TESTS
# =============================================================================

class AgencyModelTest(TestCase):
    """Agency, membership and platform admin behaviour"""

    def setUp(self):
        self.director = User.objects.create_user(
            username='director', password='pass12345', first_name='Kouadio', last_name='Yao'
        )
        self.agency = Agency.objects.create(
            name='Immo Plus',
            commercial_register='CI-ABJ-2024-B-001',
            city='Abidjan',
            director=self.director,
        )

    def test_business_id_allocated(self):
        self.assertTrue(self.agency.business_id.startswith('AGEN-'))
        self.assertEqual(str(self.agency), 'Immo Plus')

    def test_representative_falls_back_to_director(self):
        self.assertEqual(self.agency.get_representative_name(), 'Kouadio Yao')
        self.agency.legal_representative = 'Me Bamba'
        self.assertEqual(self.agency.get_representative_name(), 'Me Bamba')

    def test_full_address_falls_back_to_city(self):
        self.assertEqual(self.agency.get_full_address(), 'Abidjan')
        self.agency.address = 'Boulevard Latrille'
        self.assertEqual(self.agency.get_full_address(), 'Boulevard Latrille')

    def test_director_gets_every_permission(self):
        membership = AgencyUser.objects.create(user=self.director, agency=self.agency, role='director')
        self.assertTrue(all(membership.has_permission(key) for key in PERMISSION_KEYS))

    def test_agent_permissions_filled_with_defaults(self):
        agent = User.objects.create_user(username='agent', password='pass12345')
        membership = AgencyUser.objects.create(
            user=agent, agency=self.agency, role='agent', permissions={'properties': True}
        )
        self.assertTrue(membership.has_permission('properties'))
        self.assertTrue(membership.has_permission('dashboard'))
        self.assertFalse(membership.has_permission('settings'))
        self.assertEqual(set(membership.permissions), set(PERMISSION_KEYS))

    def test_membership_lookup_ignores_inactive(self):
        agent = User.objects.create_user(username='agent', password='pass12345')
        AgencyUser.objects.create(user=agent, agency=self.agency, role='agent', is_active=False)
        self.assertIsNone(get_user_agency_membership(agent))

    def test_platform_admin_flag(self):
        admin = User.objects.create_user(username='admin', password='pass12345')
        self.assertFalse(is_platform_admin(admin))
        PlatformAdmin.objects.create(user=admin, role='super_admin')
        self.assertTrue(is_platform_admin(admin))

    def test_platform_setting_get_value(self):
        PlatformSetting.objects.create(setting_key='trial_days', setting_value=45)
        self.assertEqual(PlatformSetting.get_value('trial_days'), 45)
        self.assertEqual(PlatformSetting.get_value('missing', 'fallback'), 'fallback')


# =============================================================================
# REGISTRATION TESTS
# =============================================================================

class RegistrationServiceTest(TestCase):
    """Approval and rejection of agency sign-up requests"""

    def setUp(self):
        self.admin = User.objects.create_user(username='admin', password='pass12345')
        PlatformAdmin.objects.create(user=self.admin)
        self.applicant = User.objects.create_user(username='applicant', password='pass12345')
        self.registration = AgencyRegistrationRequest.objects.create(
            agency_name='Agence du Plateau',
            commercial_register='CI-ABJ-2025-B-777',
            city='Abidjan',
            phone='+225 07 07 07 07 07',
            director_first_name='Aya',
            director_last_name='Traoré',
            director_email='aya@plateau.ci',
            director_auth_user=self.applicant,
        )

    def test_approval_creates_agency_director_and_trial(self):
        result = agency_services.approve_registration_request(self.registration.pk, self.admin)

        self.assertTrue(result['ok'])
        agency = Agency.objects.get(pk=result['agency_id'])
        self.assertEqual(agency.name, 'Agence du Plateau')
        self.assertEqual(agency.director, self.applicant)
        self.assertEqual(agency.legal_representative, 'Aya Traoré')

        membership = AgencyUser.objects.get(user=self.applicant, agency=agency)
        self.assertEqual(membership.role, 'director')

        subscription = agency.subscription
        self.assertEqual(subscription.status, 'trial')
        self.assertEqual(subscription.trial_days_remaining, 30)
        self.assertEqual(subscription.monthly_fee, Decimal('25000'))
        self.assertEqual(subscription.next_payment_date, date.today() + timedelta(days=30))

        self.applicant.refresh_from_db()
        self.assertEqual(self.applicant.first_name, 'Aya')
        self.assertEqual(self.applicant.email, 'aya@plateau.ci')

        self.registration.refresh_from_db()
        self.assertEqual(self.registration.status, 'approved')
        self.assertEqual(self.registration.processed_by, self.admin)

    def test_trial_length_from_platform_setting(self):
        PlatformSetting.objects.create(setting_key='trial_days', setting_value=14)
        result = agency_services.approve_registration_request(self.registration.pk, self.admin)
        subscription = AgencySubscription.objects.get(agency_id=result['agency_id'])
        self.assertEqual(subscription.trial_days_remaining, 14)

    def test_approval_updates_existing_agency(self):
        existing = Agency.objects.create(name='Ancien nom', commercial_register='CI-ABJ-2025-B-777')
        result = agency_services.approve_registration_request(self.registration.pk, self.admin)
        self.assertEqual(result['agency_id'], existing.pk)
        existing.refresh_from_db()
        self.assertEqual(existing.name, 'Agence du Plateau')

    def test_only_platform_admin_may_approve(self):
        with self.assertRaises(RegistrationApprovalError):
            agency_services.approve_registration_request(self.registration.pk, self.applicant)

    def test_request_processed_once(self):
        agency_services.approve_registration_request(self.registration.pk, self.admin)
        with self.assertRaises(RegistrationApprovalError):
            agency_services.approve_registration_request(self.registration.pk, self.admin)
        with self.assertRaises(RegistrationApprovalError):
            agency_services.reject_registration_request(self.registration.pk, self.admin)

    def test_approval_requires_director_account(self):
        self.registration.director_auth_user = None
        self.registration.save()
        with self.assertRaises(RegistrationApprovalError):
            agency_services.approve_registration_request(self.registration.pk, self.admin)
        self.assertFalse(Agency.objects.filter(commercial_register='CI-ABJ-2025-B-777').exists())

    def test_unknown_request(self):
        with self.assertRaises(RegistrationApprovalError):
            agency_services.approve_registration_request(999999, self.admin)

    def test_rejection_keeps_notes(self):
        registration = agency_services.reject_registration_request(
            self.registration.pk, self.admin, 'Registre de commerce illisible'
        )
        self.assertEqual(registration.status, 'rejected')
        self.assertEqual(registration.admin_notes, 'Registre de commerce illisible')
        self.assertFalse(Agency.objects.exists())


# =============================================================================
# SUBSCRIPTION TESTS
# =============================================================================

class SubscriptionServiceTest(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(username='admin', password='pass12345')
        PlatformAdmin.objects.create(user=self.admin)
        self.agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')
        self.subscription = AgencySubscription.objects.create(
            agency=self.agency,
            monthly_fee=Decimal('25000'),
            next_payment_date=date(2025, 1, 31),
        )

    def test_extend_moves_next_payment_date(self):
        subscription = agency_services.extend_subscription(self.agency, 3, self.admin)

        self.assertEqual(subscription.next_payment_date, date(2025, 4, 30))
        self.assertEqual(subscription.status, 'active')
        self.assertEqual(subscription.last_payment_date, date.today())
        self.assertEqual(subscription.payment_history[-1]['amount'], 75000.0)
        self.assertEqual(subscription.payment_history[-1]['months'], 3)

        payment = SubscriptionPayment.objects.get(subscription=subscription)
        self.assertEqual(payment.amount, Decimal('75000'))
        self.assertEqual(payment.processed_by, self.admin)

    def test_extend_requires_admin_and_positive_months(self):
        member = User.objects.create_user(username='member', password='pass12345')
        with self.assertRaises(SubscriptionError):
            agency_services.extend_subscription(self.agency, 1, member)
        with self.assertRaises(SubscriptionError):
            agency_services.extend_subscription(self.agency, 0, self.admin)
        with self.assertRaises(SubscriptionError):
            agency_services.extend_subscription(self.agency, 'deux', self.admin)

    def test_extend_creates_missing_subscription(self):
        other = Agency.objects.create(name='Nouvelle', commercial_register='CI-ABJ-2')
        subscription = agency_services.extend_subscription(other, 1, self.admin)
        self.assertEqual(subscription.agency, other)
        self.assertEqual(subscription.status, 'active')

    def test_suspend_and_activate(self):
        subscription = agency_services.suspend_subscription(self.agency, 'Impayé')
        self.assertEqual(subscription.status, 'suspended')
        self.assertEqual(subscription.suspension_reason, 'Impayé')
        self.assertFalse(subscription.is_active)

        subscription = agency_services.activate_subscription(self.agency)
        self.assertEqual(subscription.status, 'active')
        self.assertEqual(subscription.suspension_reason, '')
        self.assertEqual(subscription.next_payment_date, date.today() + timedelta(days=30))

    def test_overdue(self):
        self.assertTrue(self.subscription.is_overdue(today=date(2025, 2, 1)))
        self.assertFalse(self.subscription.is_overdue(today=date(2025, 1, 31)))

    def test_plan_price_from_settings(self):
        self.assertEqual(agency_services.get_plan_price('basic'), Decimal('25000'))
        self.assertEqual(agency_services.get_plan_price('premium'), Decimal('50000'))
        PlatformSetting.objects.create(setting_key='subscription_premium_price', setting_value=60000)
        self.assertEqual(agency_services.get_plan_price('premium'), Decimal('60000'))


# =============================================================================
# RANKING TESTS
# =============================================================================

class RankingServiceTest(TestCase):
    """Scores are computed from agency data, never at random"""

    def setUp(self):
        self.first = Agency.objects.create(name='Alpha Immo', commercial_register='CI-1')
        self.second = Agency.objects.create(name='Beta Immo', commercial_register='CI-2')
        self.pending = Agency.objects.create(name='Gamma Immo', commercial_register='CI-3', status='pending')

        owner = Owner.objects.create(agency=self.first, first_name='Awa', last_name='Koné', phone='0707070707')
        Property.objects.create(agency=self.first, owner=owner, title='Villa')
        Tenant.objects.create(agency=self.first, first_name='Ali', last_name='Touré', phone='0505050505')

    def test_scores(self):
        scores = agency_services.compute_agency_scores(self.first, 2025)
        self.assertAlmostEqual(scores.volume_score, 0.6)
        self.assertAlmostEqual(scores.recovery_rate_score, 0.0)
        self.assertAlmostEqual(scores.satisfaction_score, 60 + 40 / 30)
        self.assertEqual(scores.metrics['total_properties'], 1)
        self.assertEqual(scores.metrics['good_payers'], 1)

    def test_rankings_ordered_and_rewarded(self):
        rankings = agency_services.generate_agency_rankings(2025)

        self.assertEqual([ranking.agency for ranking in rankings], [self.first, self.second])
        self.assertEqual(rankings[0].rank, 1)
        self.assertEqual(rankings[0].total_score, Decimal('15.57'))
        self.assertEqual(rankings[0].rewards[0]['amount'], 500000)
        self.assertEqual(rankings[1].rewards[0]['amount'], 250000)
        self.assertFalse(AgencyRanking.objects.filter(agency=self.pending).exists())

    def test_rankings_are_repeatable(self):
        first_run = [(r.agency_id, r.total_score) for r in agency_services.generate_agency_rankings(2025)]
        second_run = [(r.agency_id, r.total_score) for r in agency_services.generate_agency_rankings(2025)]
        self.assertEqual(first_run, second_run)
        self.assertEqual(AgencyRanking.objects.filter(year=2025).count(), 2)

    def test_ties_broken_by_agency_id(self):
        Property.objects.filter(agency=self.first).delete()
        Tenant.objects.filter(agency=self.first).delete()
        rankings = agency_services.generate_agency_rankings(2025)
        self.assertEqual([ranking.agency for ranking in rankings], [self.first, self.second])

    def test_generate_rankings_command(self):
        out = StringIO()
        call_command('generate_rankings', '--year', '2025', '--seed-settings', stdout=out)
        self.assertIn('AGENCY RANKINGS 2025', out.getvalue())
        self.assertIn('Alpha Immo', out.getvalue())
        self.assertTrue(PlatformSetting.objects.filter(setting_key='reward_budget').exists())


# =============================================================================
# SETTINGS AND EXPORT TESTS
# =============================================================================

class PlatformServicesTest(TestCase):

    def test_seed_default_settings_is_idempotent(self):
        created = agency_services.seed_default_platform_settings()
        self.assertEqual(created, len(agency_services.DEFAULT_PLATFORM_SETTINGS))
        self.assertEqual(agency_services.seed_default_platform_settings(), 0)
        self.assertEqual(PlatformSetting.get_value('subscription_basic_price'), 25000)

    def test_export_contains_records_without_credentials(self):
        agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-1')
        user = User.objects.create_user(username='agent', password='secret-pass-1')
        AgencyUser.objects.create(user=user, agency=agency, role='agent')
        owner = Owner.objects.create(agency=agency, first_name='Awa', last_name='Koné', phone='0707070707')
        Property.objects.create(agency=agency, owner=owner, title='Villa')

        document = agency_services.export_agency_data(agency)

        self.assertEqual(document['agency']['name'], 'Immo Plus')
        self.assertEqual(len(document['data']['properties']), 1)
        self.assertEqual(len(document['data']['owners']), 1)
        self.assertEqual(document['statistics']['total_users'], 1)
        self.assertNotIn('user__password', document['data']['users'][0])
        self.assertEqual(document['data']['users'][0]['user__username'], 'agent')


# =============================================================================
# API TESTS
# =============================================================================

class AgenciesAPITestCase(APITestCase):
    """Base class with an agency, its director, an agent and a platform admin"""

    def setUp(self):
        cache.clear()
        self.agency = Agency.objects.create(name='Immo Plus', commercial_register='CI-ABJ-1')
        self.other_agency = Agency.objects.create(name='Autre Agence', commercial_register='CI-ABJ-2')

        self.director = User.objects.create_user(username='director', password='pass12345')
        AgencyUser.objects.create(user=self.director, agency=self.agency, role='director')
        self.agent = User.objects.create_user(username='agent', password='pass12345')
        AgencyUser.objects.create(user=self.agent, agency=self.agency, role='agent')

        self.admin = User.objects.create_user(username='admin', password='pass12345')
        PlatformAdmin.objects.create(user=self.admin)


class AgencyAPITest(AgenciesAPITestCase):

    def test_members_see_only_their_agency(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('agency-list'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([item['id'] for item in response.data['results']], [self.agency.pk])

    def test_admin_sees_every_agency(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.get(reverse('agency-list'))
        self.assertEqual(response.data['count'], 2)

    def test_me(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('agency-me'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['role'], 'agent')
        self.assertEqual(response.data['agency']['id'], self.agency.pk)
        self.assertFalse(response.data['is_platform_admin'])

    def test_agent_cannot_edit_agency(self):
        self.client.force_authenticate(user=self.agent)
        response = self.client.patch(
            reverse('agency-detail', args=[self.agency.pk]), {'city': 'Bouaké'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_director_edits_agency(self):
        self.client.force_authenticate(user=self.director)
        response = self.client.patch(
            reverse('agency-detail', args=[self.agency.pk]), {'city': 'Bouaké'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.agency.refresh_from_db()
        self.assertEqual(self.agency.city, 'Bouaké')

    def test_other_agency_not_found(self):
        self.client.force_authenticate(user=self.director)
        response = self.client.get(reverse('agency-detail', args=[self.other_agency.pk]))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_stats_and_export(self):
        self.client.force_authenticate(user=self.director)
        response = self.client.get(reverse('agency-stats', args=[self.agency.pk]))
        self.assertEqual(response.data['total_users'], 2)
        response = self.client.get(reverse('agency-export', args=[self.agency.pk]))
        self.assertEqual(response.data['agency']['commercial_register'], 'CI-ABJ-1')

    def test_unauthenticated_rejected(self):
        response = self.client.get(reverse('agency-list'))
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class AgencyUserAPITest(AgenciesAPITestCase):

    def test_director_adds_member(self):
        newcomer = User.objects.create_user(username='newcomer', password='pass12345')
        self.client.force_authenticate(user=self.director)
        response = self.client.post(
            reverse('agency-user-list'),
            {'user': newcomer.pk, 'role': 'manager', 'permissions': {'properties': True}},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        membership = AgencyUser.objects.get(user=newcomer)
        self.assertEqual(membership.agency, self.agency)
        self.assertTrue(membership.has_permission('properties'))

    def test_duplicate_member_rejected(self):
        self.client.force_authenticate(user=self.director)
        response = self.client.post(
            reverse('agency-user-list'), {'user': self.agent.pk, 'role': 'agent'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_permission_key_rejected(self):
        newcomer = User.objects.create_user(username='newcomer', password='pass12345')
        self.client.force_authenticate(user=self.director)
        response = self.client.post(
            reverse('agency-user-list'),
            {'user': newcomer.pk, 'permissions': {'superpower': True}},
            format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('permissions', response.data)

    def test_agent_cannot_add_member(self):
        newcomer = User.objects.create_user(username='newcomer', password='pass12345')
        self.client.force_authenticate(user=self.agent)
        response = self.client.post(reverse('agency-user-list'), {'user': newcomer.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class RegistrationRequestAPITest(AgenciesAPITestCase):

    def setUp(self):
        super().setUp()
        self.payload = {
            'agency_name': 'Agence de Yopougon',
            'commercial_register': 'CI-ABJ-2025-B-900',
            'city': 'Abidjan',
            'phone': '+225 07 08 09 10 11',
            'director_first_name': 'Moussa',
            'director_last_name': 'Diallo',
            'director_email': 'moussa@yop.ci',
        }

    def test_anonymous_submission(self):
        response = self.client.post(reverse('registration-request-list'), self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')

    def test_submission_validation(self):
        payload = dict(self.payload, commercial_register='CI-ABJ-1', is_accredited=True, phone='12')
        response = self.client.post(reverse('registration-request-list'), payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('phone', response.data)

    def test_registrations_closed(self):
        PlatformSetting.objects.create(setting_key='allow_new_registrations', setting_value=False)
        response = self.client.post(reverse('registration-request-list'), self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.data['success'])

    def test_submissions_rate_limited(self):
        url = reverse('registration-request-list')
        for index in range(20):
            payload = dict(self.payload, commercial_register=f'CI-ABJ-2025-B-{index}')
            self.assertEqual(self.client.post(url, payload, format='json').status_code, status.HTTP_201_CREATED)

        response = self.client.post(url, self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)

    def test_admin_console_not_rate_limited(self):
        self.client.force_authenticate(user=self.admin)
        codes = {self.client.get(reverse('registration-request-list')).status_code for _ in range(22)}
        self.assertEqual(codes, {status.HTTP_200_OK})

    def test_admin_approves(self):
        applicant = User.objects.create_user(username='moussa', password='pass12345')
        registration = AgencyRegistrationRequest.objects.create(
            agency_name='Agence de Yopougon',
            commercial_register='CI-ABJ-2025-B-900',
            director_first_name='Moussa',
            director_last_name='Diallo',
            director_email='moussa@yop.ci',
            director_auth_user=applicant,
        )
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('registration-request-approve', args=[registration.pk]))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertTrue(AgencyUser.objects.filter(user=applicant, role='director').exists())

        response = self.client.post(reverse('registration-request-approve', args=[registration.pk]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cette demande a déjà été traitée.')

    def test_members_cannot_list_requests(self):
        self.client.force_authenticate(user=self.director)
        response = self.client.get(reverse('registration-request-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SubscriptionAPITest(AgenciesAPITestCase):

    def setUp(self):
        super().setUp()
        self.subscription = AgencySubscription.objects.create(agency=self.agency, monthly_fee=Decimal('25000'))

    def test_member_reads_own_subscription(self):
        AgencySubscription.objects.create(agency=self.other_agency)
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('subscription-list'))
        self.assertEqual(response.data['count'], 1)

    def test_member_cannot_extend(self):
        self.client.force_authenticate(user=self.director)
        response = self.client.post(
            reverse('subscription-extend', args=[self.subscription.pk]), {'months': 2}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_extends_and_suspends(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            reverse('subscription-extend', args=[self.subscription.pk]), {'months': 2}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'active')

        response = self.client.post(
            reverse('subscription-suspend', args=[self.subscription.pk]), {'reason': 'Impayé'}, format='json'
        )
        self.assertEqual(response.data['status'], 'suspended')

    def test_extend_validates_months(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(
            reverse('subscription-extend', args=[self.subscription.pk]), {'months': 0}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class RankingAndSettingsAPITest(AgenciesAPITestCase):

    def test_admin_generates_rankings(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('ranking-generate'), {'year': 2025}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['count'], 2)

        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('ranking-list'), {'year': 2025})
        self.assertEqual(response.data['count'], 2)

    def test_member_cannot_generate_rankings(self):
        self.client.force_authenticate(user=self.director)
        response = self.client.post(reverse('ranking-generate'), {'year': 2025}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_members_see_public_settings_only(self):
        PlatformSetting.objects.create(setting_key='support_email', setting_value='a@b.ci', is_public=True)
        PlatformSetting.objects.create(setting_key='reward_budget', setting_value=1500000)
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('platform-setting-list'))
        self.assertEqual([item['setting_key'] for item in response.data['results']], ['support_email'])

    def test_admin_seeds_defaults(self):
        self.client.force_authenticate(user=self.admin)
        response = self.client.post(reverse('platform-setting-seed-defaults'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['created'], len(agency_services.DEFAULT_PLATFORM_SETTINGS))

    def test_maintenance_mode_blocks_api(self):
        PlatformSetting.objects.create(setting_key='maintenance_mode', setting_value=True)
        self.client.force_authenticate(user=self.agent)
        response = self.client.get(reverse('agency-list'))
        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE)
        response = self.client.get(reverse('health-check'))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
