# dental_clinic/urls.py
# Booking is driven from management commands and the appointments.utils
# workflow; no HTTP endpoints are exposed yet.
urlpatterns = []
