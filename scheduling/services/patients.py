from django.contrib.auth import get_user_model

from scheduling.exceptions import PatientNotFound

User = get_user_model()


def get_patient(patient_id, *, lock: bool = False):
    """Return the patient user, optionally row-locked for the current transaction."""
    qs = User.objects.filter(role=User.ROLE_PATIENT)
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=patient_id)
    except User.DoesNotExist:
        raise PatientNotFound(f'Patient with ID {patient_id} not found')
