from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include


def home(request):
    return JsonResponse({"message": "Atyant backend is running"})


urlpatterns = [
    path('', home),
    path('admin/', admin.site.urls),
    # auth, profile, questions, ratings, payment, iim
    path('api/', include('mentorship.urls')),
    # messages, conversations, mentors, community-chat
    path('api/', include('chat.urls')),
]
