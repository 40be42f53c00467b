"""
API Serializers for announcements, interests and messages.
"""

from django.utils import timezone
from rest_framework import serializers

from agencies.models import AgencyUser

from .models import Announcement, AnnouncementInterest, Message


# =============================================================================
# ANNOUNCEMENT SERIALIZERS
# =============================================================================

class AnnouncementSerializer(serializers.ModelSerializer):
    """
    Announcement with a summary of its property.

    The property must belong to the publishing agency and be offered for
    the announced type (rent or sale).
    """

    agency_name = serializers.CharField(source='agency.name', read_only=True)
    property_title = serializers.CharField(source='property.title', read_only=True)
    commune = serializers.SerializerMethodField()
    monthly_rent = serializers.DecimalField(
        source='property.monthly_rent', max_digits=12, decimal_places=2, read_only=True
    )
    interest_count = serializers.SerializerMethodField()
    is_own = serializers.SerializerMethodField()

    class Meta:
        model = Announcement
        fields = [
            'id',
            'agency',
            'agency_name',
            'property',
            'property_title',
            'commune',
            'monthly_rent',
            'title',
            'description',
            'type',
            'is_active',
            'expires_at',
            'views',
            'interest_count',
            'is_own',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'agency', 'views', 'created_by', 'created_at', 'updated_at']

    def get_commune(self, obj):
        return (obj.property.location or {}).get('commune')

    def get_interest_count(self, obj):
        return obj.interests.count()

    def get_is_own(self, obj):
        agency = self.context.get('agency')
        return agency is not None and obj.agency_id == agency.pk

    def validate_expires_at(self, value):
        if value is not None and value <= timezone.now():
            raise serializers.ValidationError("La date d'expiration doit être dans le futur.")
        return value

    def validate(self, data):
        errors = {}

        property_obj = data.get('property', getattr(self.instance, 'property', None))
        announcement_type = data.get('type', getattr(self.instance, 'type', None))

        agency = getattr(self.instance, 'agency', None) or self.context.get('agency')
        if property_obj is not None and agency is not None and property_obj.agency_id != agency.pk:
            errors['property'] = "Cet enregistrement n'appartient pas à votre agence."
        elif property_obj is not None:
            if announcement_type == 'location' and not property_obj.for_rent:
                errors['type'] = "Ce bien n'est pas proposé à la location."
            elif announcement_type == 'vente' and not property_obj.for_sale:
                errors['type'] = "Ce bien n'est pas proposé à la vente."

        if errors:
            raise serializers.ValidationError(errors)
        return data


class AnnouncementInterestSerializer(serializers.ModelSerializer):
    announcement_title = serializers.CharField(source='announcement.title', read_only=True)
    agency_name = serializers.CharField(source='agency.name', read_only=True)
    username = serializers.SerializerMethodField()

    class Meta:
        model = AnnouncementInterest
        fields = [
            'id', 'announcement', 'announcement_title', 'agency', 'agency_name',
            'user', 'username', 'message', 'status', 'created_at',
        ]
        read_only_fields = fields

    def get_username(self, obj):
        return obj.user.get_full_name() or obj.user.get_username()


class ExpressInterestSerializer(serializers.Serializer):
    message = serializers.CharField(required=False, allow_blank=True, default='')


# =============================================================================
# MESSAGE SERIALIZERS
# =============================================================================

class MessageSerializer(serializers.ModelSerializer):
    """
    Direct message. The receiver must be an active member of an agency;
    the sender and its agency come from the request.
    """

    sender_name = serializers.SerializerMethodField()
    receiver_name = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = [
            'id',
            'agency',
            'sender',
            'sender_name',
            'receiver',
            'receiver_name',
            'property',
            'announcement',
            'subject',
            'content',
            'is_read',
            'attachments',
            'created_at',
        ]
        read_only_fields = ['id', 'agency', 'sender', 'is_read', 'created_at']

    def _name(self, user):
        return user.get_full_name() or user.get_username()

    def get_sender_name(self, obj):
        return self._name(obj.sender)

    def get_receiver_name(self, obj):
        return self._name(obj.receiver)

    def validate_receiver(self, value):
        if not AgencyUser.objects.filter(user=value, is_active=True).exists():
            raise serializers.ValidationError("Le destinataire n'est membre d'aucune agence.")
        request = self.context.get('request')
        if request is not None and request.user.pk == value.pk:
            raise serializers.ValidationError("Vous ne pouvez pas vous écrire à vous-même.")
        return value

    def validate_attachments(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError("Les pièces jointes doivent être une liste d'URL.")
        return value
