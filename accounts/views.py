import logging

from django.contrib.auth import get_user_model
from django.utils import timezone
from drf_spectacular.utils import extend_schema
from rest_framework import generics, permissions, status, views, filters
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from .serializers import CustomTokenObtainPairSerializer, UserSerializer, DoctorSerializer, LogoutSerializer

logger = logging.getLogger(__name__)
User = get_user_model()


class CustomTokenObtainPairView(TokenObtainPairView):
    """
    Custom JWT login view that updates user's last login time
    after successful authentication.
    """
    serializer_class = CustomTokenObtainPairSerializer

    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)
        if response.status_code == 200:
            User.objects.filter(username=request.data.get('username')).update(last_login=timezone.now())
        return response


class UserLogoutView(views.APIView):
    """
    Logs out the authenticated user by blacklisting the refresh token.
    """
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = LogoutSerializer

    @extend_schema(request=LogoutSerializer, responses={200: None})
    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        if not serializer.is_valid():
            return Response({"error": "Refresh token is required"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            # adds refresh token to the blacklist
            RefreshToken(serializer.validated_data['refresh_token']).blacklist()
        except TokenError as e:
            return Response({"error": str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({"message": "logged out successfully"}, status=status.HTTP_200_OK)


class UserProfileView(generics.RetrieveUpdateAPIView):
    """
    Retrieves and updates the authenticated user's profile.
    Non-admin users are not allowed to change their role.
    """
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        return self.request.user

    def update(self, request, *args, **kwargs):
        # you can't change your role if you're not an admin
        if 'role' in request.data and request.user.role != 'admin':
            return Response(
                {"error": "you do not have permission to perform this action"},
                status=status.HTTP_403_FORBIDDEN
            )
        return super().update(request, *args, **kwargs)


class DoctorListView(generics.ListAPIView):
    """
    Lists doctors available for booking.
    Staff can pass ?include_inactive=true to see everybody.
    """
    serializer_class = DoctorSerializer
    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['first_name', 'last_name', 'specialization']
    ordering_fields = ['last_name', 'consultation_fee']

    def get_queryset(self):
        queryset = User.objects.filter(role='doctor')
        include_inactive = self.request.query_params.get('include_inactive') == 'true'
        if not (include_inactive and self.request.user.is_clinic_staff):
            queryset = queryset.filter(is_active=True)
        return queryset.order_by('last_name', 'first_name')
