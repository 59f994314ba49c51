from django.urls import path
from .views import FollowersView, FollowingView, FollowSuggestionsView, FollowView

urlpatterns = [
    path('suggestions/', FollowSuggestionsView.as_view(), name='follow_suggestions'),
    path('<str:username>/', FollowView.as_view(), name='follow_user'),
    path('<str:username>/followers/', FollowersView.as_view(), name='followers'),
    path('<str:username>/following/', FollowingView.as_view(), name='following'),
]
