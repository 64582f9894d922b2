from django.urls import include, path
from rest_framework.routers import DefaultRouter
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

from clientdesk.api import views

router = DefaultRouter()
router.register('clients', views.ClientViewSet, basename='client')
router.register('invoices', views.InvoiceViewSet, basename='invoice')
router.register('payments', views.PaymentViewSet, basename='payment')
router.register('components', views.ComponentViewSet, basename='component')
router.register('progress-steps', views.ProgressStepViewSet, basename='progress-step')
router.register('calendar-events', views.CalendarEventViewSet, basename='calendar-event')
router.register('chats', views.ChatViewSet, basename='chat')
router.register('chat-messages', views.ChatMessageViewSet, basename='chat-message')
router.register('tags', views.TagViewSet, basename='tag')
router.register('users', views.UserViewSet, basename='user')

urlpatterns = [
    path('auth/token/', views.EmailTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', views.CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', views.LogoutView.as_view(), name='logout'),
    path('auth/register/', views.RegisterView.as_view(), name='register'),
    path('auth/me/', views.MeView.as_view(), name='me'),
    path('dashboard/', views.DashboardView.as_view(), name='dashboard'),
    path('schema/', SpectacularAPIView.as_view(), name='schema'),
    path('docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('', include(router.urls)),
]
