from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView
from . import views

urlpatterns = [
    # authentication
    path('auth/login/', views.CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', views.UserLogoutView.as_view(), name='logout'),

    # user profile
    path('profile/', views.UserProfileView.as_view(), name='user-profile'),

    # doctors directory
    path('doctors/', views.DoctorListView.as_view(), name='doctor-list'),
]
