"""
URL mappings for the clinic API.

Collection and detail routes share a view function that dispatches on
the HTTP method.  Trailing slashes are omitted throughout.
"""
from django.urls import path, include

from .views import health
from .auth_views import login_view, logout_view, me_view, register_view
from .views.appointments import appointment_detail, appointments, upcoming_appointments
from .views.home_visits import home_visit_detail, home_visits, upcoming_home_visits
from .views.patients import patient_detail, patient_medical_history, patients
from .views.doctors import available_doctors, doctor_appointments, doctor_detail, doctors
from .views.guardians import guardian_detail, guardian_patients, guardians
from .views.medications import active_medications, medication_detail, medications
from .views.prescriptions import active_prescriptions, prescription_detail, prescriptions
from .views.emergencies import acknowledge, active_emergencies, emergencies, emergency_detail


urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz, name='healthz'),
    # Authentication
    path('api/register', register_view, name='register_view'),
    path('api/login', login_view, name='login_view'),
    path('api/logout', logout_view, name='logout_view'),
    path('api/me', me_view, name='me_view'),
    # Appointments
    path('api/appointments', appointments, name='appointments'),
    path('api/appointments/<int:pk>', appointment_detail, name='appointment_detail'),
    path('api/appointments-upcoming', upcoming_appointments, name='upcoming_appointments'),
    # Home visits
    path('api/home-visits', home_visits, name='home_visits'),
    path('api/home-visits/<int:pk>', home_visit_detail, name='home_visit_detail'),
    path('api/home-visits-upcoming', upcoming_home_visits, name='upcoming_home_visits'),
    # Patients
    path('api/patients', patients, name='patients'),
    path('api/patients/<int:pk>', patient_detail, name='patient_detail'),
    path('api/patients/<int:pk>/medical-history', patient_medical_history, name='patient_medical_history'),
    # Doctors
    path('api/doctors', doctors, name='doctors'),
    path('api/doctors/<int:pk>', doctor_detail, name='doctor_detail'),
    path('api/doctors/<int:pk>/appointments', doctor_appointments, name='doctor_appointments'),
    path('api/doctors-available', available_doctors, name='available_doctors'),
    # Guardians
    path('api/guardians', guardians, name='guardians'),
    path('api/guardians/<int:pk>', guardian_detail, name='guardian_detail'),
    path('api/guardians/<int:pk>/patients', guardian_patients, name='guardian_patients'),
    # Pharmacy
    path('api/medications', medications, name='medications'),
    path('api/medications/<int:pk>', medication_detail, name='medication_detail'),
    path('api/medications-active', active_medications, name='active_medications'),
    path('api/prescriptions', prescriptions, name='prescriptions'),
    path('api/prescriptions/<int:pk>', prescription_detail, name='prescription_detail'),
    path('api/prescriptions-active', active_prescriptions, name='active_prescriptions'),
    # Emergencies
    path('api/emergencies', emergencies, name='emergencies'),
    path('api/emergencies/<int:pk>', emergency_detail, name='emergency_detail'),
    path('api/emergencies/<int:pk>/acknowledge', acknowledge, name='acknowledge_emergency'),
    path('api/emergencies-active', active_emergencies, name='active_emergencies'),
]
