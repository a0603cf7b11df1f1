from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from accounts.api import (
    AgentIdentityDocumentView,
    ChangePasswordView,
    LoginView,
    MeView,
    PasswordResetConfirmView,
    PasswordResetRequestView,
    RegisterView,
)
from bookings.api import BookingViewSet
from notifications.api import NotificationStreamView, NotificationViewSet
from payments.api import (
    PaymentCallbackView,
    PaymentViewSet,
    PaystackWebhookView,
    TransactionViewSet,
)
from properties.api import PropertyViewSet

router = DefaultRouter()
router.register(r"properties", PropertyViewSet, basename="property")
router.register(r"bookings", BookingViewSet, basename="booking")
router.register(r"payments", PaymentViewSet, basename="payment")
router.register(r"transactions", TransactionViewSet, basename="transaction")
router.register(r"notifications", NotificationViewSet, basename="notification")

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/auth/register/", RegisterView.as_view(), name="auth-register"),
    path("api/auth/login/", LoginView.as_view(), name="auth-login"),
    path("api/auth/refresh/", TokenRefreshView.as_view(), name="auth-refresh"),
    path(
        "api/auth/change-password/",
        ChangePasswordView.as_view(),
        name="auth-change-password",
    ),
    path("api/auth/forgot-password/", PasswordResetRequestView.as_view(), name="auth-forgot-password"),
    path("api/auth/resend-reset-token/", PasswordResetRequestView.as_view(), name="auth-resend-reset-token"),
    path("api/auth/reset-password/", PasswordResetConfirmView.as_view(), name="auth-reset-password"),
    path("api/auth/me/", MeView.as_view(), name="auth-me"),
    path(
        "api/auth/identity-document/",
        AgentIdentityDocumentView.as_view(),
        name="auth-identity-document",
    ),
    path(
        "api/notifications/stream/",
        NotificationStreamView.as_view(),
        name="notification-stream",
    ),
    path(
        "api/payments/callback/",
        PaymentCallbackView.as_view(),
        name="payment-callback",
    ),
    path("api/", include(router.urls)),
    path("api/webhooks/paystack/", PaystackWebhookView.as_view(), name="paystack-webhook"),
    path("api/schema/", SpectacularAPIView.as_view(), name="api-schema"),
    path("api/docs/", SpectacularSwaggerView.as_view(url_name="api-schema"), name="api-docs"),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
