from django.urls import path
from .views import MeApiView, GetWsTokenView

urlpatterns = [
    path('me/', MeApiView.as_view(), name='me'),
    path('ws-token/', GetWsTokenView.as_view(), name='ws_token'),
]
