from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/auth/', include('user.urls')),
    path('api/users/', include('Profile.urls')),
    path('api/follow/', include('Profile.follow_urls')),
    path('api/posts/', include('posts.urls')),
    path('api/chat/', include('chatting.urls')),
    path('api/notifications/', include('notification.urls')),
]

handler404 = 'core.exceptions.route_not_found'
handler500 = 'core.exceptions.server_error'
