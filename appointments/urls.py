from django.urls import path
from . import views

urlpatterns = [
    path('', views.AppointmentListView.as_view(), name='appointment-list'),
    path('book/', views.AppointmentBookView.as_view(), name='appointment-book'),
    path('availability/', views.AvailabilityView.as_view(), name='appointment-availability'),

    path('<int:pk>/', views.AppointmentDetailView.as_view(), name='appointment-detail'),
    path('<int:pk>/status/', views.AppointmentStatusView.as_view(), name='appointment-status'),
    path('<int:pk>/cancel/', views.AppointmentCancelView.as_view(), name='appointment-cancel'),
    path('<int:pk>/pay/', views.AppointmentPaymentView.as_view(), name='appointment-pay'),
    path('<int:pk>/notes/', views.AppointmentNotesView.as_view(), name='appointment-notes'),
]
