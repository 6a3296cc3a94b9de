from django.urls import path
from . import views

urlpatterns = [
    # cards management
    path('', views.HealthCardListView.as_view(), name='health-card-list'),
    path('create/', views.HealthCardIssueView.as_view(), name='health-card-issue'),
    path('<int:pk>/', views.HealthCardDetailView.as_view(), name='health-card-detail'),
    path('<int:pk>/block/', views.HealthCardBlockView.as_view(), name='health-card-block'),
    path('<int:pk>/unblock/', views.HealthCardUnblockView.as_view(), name='health-card-unblock'),
    path('<int:pk>/qr/', views.HealthCardQRCodeView.as_view(), name='health-card-qr'),
    path('patient/<int:patient_id>/', views.PatientHealthCardView.as_view(), name='patient-health-card'),
    path('card/<str:card_number>/', views.HealthCardByNumberView.as_view(), name='health-card-by-number'),

    # public verification
    path('validate/<str:card_number>/', views.HealthCardValidateView.as_view(), name='health-card-validate'),

    # requests
    path('requests/', views.HealthCardRequestListView.as_view(), name='health-card-request-list'),
    path('requests/submit/', views.HealthCardRequestSubmitView.as_view(), name='health-card-request-submit'),
    path('requests/mine/', views.MyHealthCardRequestView.as_view(), name='health-card-request-mine'),
    path('requests/<int:pk>/approve/', views.HealthCardRequestApproveView.as_view(), name='health-card-request-approve'),
    path('requests/<int:pk>/reject/', views.HealthCardRequestRejectView.as_view(), name='health-card-request-reject'),
]
