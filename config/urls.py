from django.urls import path, include

urlpatterns = [
    path('api/abandoned-cart/', include('apps.cart.urls')),
]
