from django.urls import path

from . import views

app_name = 'cart'

urlpatterns = [
    path('log/', views.log_activity, name='log'),
    path('retrieve/', views.retrieve_cart, name='retrieve'),
    path('send-reminders/', views.send_reminders, name='send_reminders'),
    path('converted/', views.mark_converted, name='converted'),
    path('unsubscribe/', views.unsubscribe, name='unsubscribe'),
]
