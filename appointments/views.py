import logging

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiTypes
from rest_framework import generics, views, status, filters
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import IsDoctorOrStaff, IsPatientOrStaff, OwnRecordPermission
from common.exceptions import AuthorizationError
from . import services
from .models import Appointment
from .serializers import (
    AppointmentSerializer, AppointmentBookingSerializer, AvailabilityQuerySerializer,
    SlotSerializer, StatusChangeSerializer, NotesSerializer,
)
from .slots import available_slots

logger = logging.getLogger(__name__)


def visible_appointments(user):
    # staff see everything, doctors their schedule, patients their own bookings
    if user.is_clinic_staff:
        return Appointment.objects.all()
    if user.role == 'doctor':
        return Appointment.objects.filter(doctor=user)
    if user.role == 'patient':
        return Appointment.objects.filter(patient=user)
    return Appointment.objects.none()


class AppointmentListView(generics.ListAPIView):
    """
    Lists appointments visible to the current user with filtering and search.
    """
    serializer_class = AppointmentSerializer
    permission_classes = [IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'appointment_date', 'doctor', 'appointment_type', 'payment_status']
    search_fields = ['patient_name', 'patient_email', 'doctor_name', 'reason']
    ordering_fields = ['appointment_date', 'start_time', 'created_at']

    def get_queryset(self):
        if getattr(self, 'swagger_fake_view', False):
            return Appointment.objects.none()
        return visible_appointments(self.request.user).order_by('-appointment_date', '-start_time')


class AppointmentBookView(views.APIView):
    """
    Books an appointment. Patients book for themselves,
    staff can book on behalf of a patient.
    """
    permission_classes = [IsPatientOrStaff]

    @extend_schema(request=AppointmentBookingSerializer, responses={201: AppointmentSerializer})
    def post(self, request):
        serializer = AppointmentBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        user = request.user
        patient_id = data.get('patient_id')
        if user.role == 'patient':
            if patient_id and patient_id != user.id:
                raise AuthorizationError('patients can only book for themselves', field='patient_id')
            patient_id = user.id
        elif not patient_id:
            return Response({'patient_id': ['This field is required.']}, status=status.HTTP_400_BAD_REQUEST)

        appointment = services.book(
            patient_id=patient_id,
            doctor_id=data['doctor_id'],
            date=data['appointment_date'],
            start_time=data['start_time'],
            end_time=data['end_time'],
            appointment_type=data['appointment_type'],
            reason=data['reason'],
            symptoms=data.get('symptoms'),
        )
        return Response(AppointmentSerializer(appointment).data, status=status.HTTP_201_CREATED)


class AvailabilityView(views.APIView):
    """
    Free slots of a doctor for a date (?doctor_id=&date=YYYY-MM-DD).
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(
        parameters=[
            OpenApiParameter('doctor_id', OpenApiTypes.INT, required=True),
            OpenApiParameter('date', OpenApiTypes.DATE, required=True),
        ],
        responses={200: OpenApiTypes.OBJECT},
    )
    def get(self, request):
        query = AvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        doctor_id = query.validated_data['doctor_id']
        date = query.validated_data['date']

        slots = available_slots(doctor_id, date)
        return Response({
            'doctor_id': doctor_id,
            'date': date.isoformat(),
            'available_slots': SlotSerializer(slots, many=True).data,
        })


class AppointmentDetailView(generics.RetrieveAPIView):
    """
    Retrieves a single appointment.
    Access is restricted based on user role and ownership.
    """
    serializer_class = AppointmentSerializer
    permission_classes = [IsAuthenticated, OwnRecordPermission]

    def get_queryset(self):
        return Appointment.objects.all()


class AppointmentStatusView(views.APIView):
    """
    Moves an appointment through its lifecycle.
    Role rules are enforced by the ledger.
    """
    permission_classes = [IsAuthenticated]

    @extend_schema(request=StatusChangeSerializer, responses={200: AppointmentSerializer})
    def patch(self, request, pk):
        serializer = StatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        appointment = services.change_status(pk, serializer.validated_data['status'], request.user)
        return Response(AppointmentSerializer(appointment).data)


class AppointmentCancelView(views.APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=None, responses={200: AppointmentSerializer})
    def patch(self, request, pk):
        appointment = services.cancel(pk, request.user)
        return Response(AppointmentSerializer(appointment).data)


class AppointmentPaymentView(views.APIView):
    """
    Simulated payment: flips the paid flag, no money moves.
    """
    permission_classes = [IsPatientOrStaff]

    @extend_schema(request=None, responses={200: AppointmentSerializer})
    def post(self, request, pk):
        appointment = services.set_payment_captured(pk, actor=request.user)
        return Response({
            'status': 'success',
            'message': 'payment recorded',
            'appointment': AppointmentSerializer(appointment).data,
        })


class AppointmentNotesView(views.APIView):
    permission_classes = [IsDoctorOrStaff]

    @extend_schema(request=NotesSerializer, responses={200: AppointmentSerializer})
    def patch(self, request, pk):
        serializer = NotesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        appointment = services.update_notes(pk, serializer.validated_data['notes'], request.user)
        return Response(AppointmentSerializer(appointment).data)
