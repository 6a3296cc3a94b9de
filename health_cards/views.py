import logging

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, OpenApiTypes
from rest_framework import generics, views, status, filters
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response

from accounts.permissions import IsAdminOrStaff, IsPatient
from common.exceptions import AuthorizationError
from . import services
from .models import HealthCard, HealthCardRequest
from .serializers import (
    HealthCardSerializer, HealthCardIssueSerializer, HealthCardUpdateSerializer, BlockSerializer,
    HealthCardRequestSerializer, MedicalIntakeSerializer, ApproveRequestSerializer, RejectRequestSerializer,
)

logger = logging.getLogger(__name__)


def check_card_access(user, card):
    # staff see every card, patients only their own
    if user.is_clinic_staff:
        return
    if user.role == 'patient' and card.patient_id == user.id:
        return
    raise AuthorizationError('access denied')


class HealthCardListView(generics.ListAPIView):
    """
    Lists all health cards (staff only) with filtering and search.
    """
    queryset = HealthCard.objects.all()
    serializer_class = HealthCardSerializer
    permission_classes = [IsAdminOrStaff]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'blood_type', 'is_blocked']
    search_fields = ['card_number', 'patient_name', 'patient_email']
    ordering_fields = ['created_at', 'expiry_date']


class HealthCardIssueView(views.APIView):
    """
    Issues a card directly to a patient (staff only).
    """
    permission_classes = [IsAdminOrStaff]

    @extend_schema(request=HealthCardIssueSerializer, responses={201: HealthCardSerializer})
    def post(self, request):
        serializer = HealthCardIssueSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        card = services.issue(
            patient_id=data['patient_id'],
            expiry_date=data['expiry_date'],
            blood_type=data.get('blood_type'),
            allergies=data.get('allergies'),
            emergency_contact=data.get('emergency_contact'),
        )
        logger.info(f"Card {card.card_number} issued by {request.user.username}")
        return Response({
            'message': 'Health card created successfully',
            'health_card': HealthCardSerializer(card).data,
        }, status=status.HTTP_201_CREATED)


class HealthCardDetailView(views.APIView):
    """
    Retrieve (staff or the card holder) or partially update (staff) a card.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: HealthCardSerializer})
    def get(self, request, pk):
        card = services.get_card(pk)
        check_card_access(request.user, card)
        return Response(HealthCardSerializer(card).data)

    @extend_schema(request=HealthCardUpdateSerializer, responses={200: HealthCardSerializer})
    def patch(self, request, pk):
        if not request.user.is_clinic_staff:
            raise AuthorizationError('only staff can update health cards')

        serializer = HealthCardUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        changes = dict(serializer.validated_data)
        # immutable fields are dropped by the serializer, pass them on so the registry refuses them
        changes.update({field: request.data[field] for field in services.IMMUTABLE_FIELDS if field in request.data})

        card = services.update(pk, changes)
        return Response({
            'message': 'Health card updated successfully',
            'health_card': HealthCardSerializer(card).data,
        })


class PatientHealthCardView(views.APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: HealthCardSerializer})
    def get(self, request, patient_id):
        card = services.get_card_for_patient(patient_id, request.user)
        return Response(HealthCardSerializer(card).data)


class HealthCardBlockView(views.APIView):
    permission_classes = [IsAdminOrStaff]

    @extend_schema(request=BlockSerializer, responses={200: OpenApiTypes.OBJECT})
    def patch(self, request, pk):
        serializer = BlockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        card = services.block(pk, serializer.validated_data.get('reason'))
        logger.info(f"Card {card.card_number} blocked by {request.user.username}")
        return Response({
            'status': 'success',
            'message': 'Health card blocked successfully',
            'card_number': card.card_number,
            'block_reason': card.block_reason,
        })


class HealthCardUnblockView(views.APIView):
    permission_classes = [IsAdminOrStaff]

    @extend_schema(request=None, responses={200: OpenApiTypes.OBJECT})
    def patch(self, request, pk):
        card = services.unblock(pk)
        logger.info(f"Card {card.card_number} unblocked by {request.user.username}")
        return Response({
            'status': 'success',
            'message': 'Health card unblocked successfully',
            'card_number': card.card_number,
        })


class HealthCardByNumberView(views.APIView):
    """
    Card lookup by number, valid or not (staff or the card holder).
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: HealthCardSerializer})
    def get(self, request, card_number):
        card = services.get_card_by_number(card_number)
        check_card_access(request.user, card)
        return Response({'health_card': HealthCardSerializer(card).data})


class HealthCardValidateView(views.APIView):
    """
    Public verification of a card number, e.g. after scanning the QR code.
    Card details are only returned when the card is valid.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    @extend_schema(responses={200: OpenApiTypes.OBJECT})
    def get(self, request, card_number):
        card, valid = services.validate_card_number(card_number)
        return Response({
            'is_valid': valid,
            'health_card': HealthCardSerializer(card).data if valid else None,
            'message': 'Health card is valid' if valid else 'Health card is invalid or expired',
        })


class HealthCardQRCodeView(views.APIView):
    """
    QR code of a card for the holder's phone or a printed card.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={200: OpenApiTypes.OBJECT})
    def get(self, request, pk):
        card = services.get_card(pk)
        check_card_access(request.user, card)

        verify_url = request.build_absolute_uri(f"/api/health-cards/validate/{card.card_number}/")
        qr_code, qr_data = services.render_qr_code(card, verify_url)
        return Response({
            'card_number': card.card_number,
            'qr_code': qr_code,
            'qr_data': qr_data,
        })


class HealthCardRequestListView(generics.ListAPIView):
    """
    Lists health card requests for review (staff only).
    """
    queryset = HealthCardRequest.objects.all()
    serializer_class = HealthCardRequestSerializer
    permission_classes = [IsAdminOrStaff]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status']
    search_fields = ['patient_name', 'patient_email']
    ordering_fields = ['created_at']


class HealthCardRequestSubmitView(views.APIView):
    permission_classes = [IsPatient]

    @extend_schema(request=MedicalIntakeSerializer, responses={201: HealthCardRequestSerializer})
    def post(self, request):
        serializer = MedicalIntakeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        card_request = services.submit(
            request.user.id,
            blood_type=data.get('blood_type'),
            allergies=data.get('allergies'),
            emergency_contact=data.get('emergency_contact'),
        )
        return Response({
            'message': 'Health card request submitted successfully',
            'request': HealthCardRequestSerializer(card_request).data,
        }, status=status.HTTP_201_CREATED)


class MyHealthCardRequestView(views.APIView):
    """
    The patient's most recent request, or null.
    """
    permission_classes = [IsPatient]

    @extend_schema(responses={200: HealthCardRequestSerializer})
    def get(self, request):
        card_request = services.latest_request_for(request.user.id)
        return Response({
            'request': HealthCardRequestSerializer(card_request).data if card_request else None,
        })


class HealthCardRequestApproveView(views.APIView):
    permission_classes = [IsAdminOrStaff]

    @extend_schema(request=ApproveRequestSerializer, responses={200: OpenApiTypes.OBJECT})
    def patch(self, request, pk):
        serializer = ApproveRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        card_request, card = services.approve(pk, serializer.validated_data['expiry_date'], reviewer=request.user)
        return Response({
            'message': 'Health card request approved and card issued',
            'request': HealthCardRequestSerializer(card_request).data,
            'health_card': HealthCardSerializer(card).data,
        })


class HealthCardRequestRejectView(views.APIView):
    permission_classes = [IsAdminOrStaff]

    @extend_schema(request=RejectRequestSerializer, responses={200: HealthCardRequestSerializer})
    def patch(self, request, pk):
        serializer = RejectRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        card_request = services.reject(pk, serializer.validated_data['rejection_reason'], reviewer=request.user)
        return Response({
            'message': 'Health card request rejected',
            'request': HealthCardRequestSerializer(card_request).data,
        })
