import pytest
from django.core.cache import cache

from scheduling.models import User


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def clinician(db):
    return User.objects.create_user(username='dr_house', password='P@ssw0rd1', role=User.ROLE_CLINICIAN,
                                    first_name='Gregory', last_name='House')


@pytest.fixture
def other_clinician(db):
    return User.objects.create_user(username='dr_wilson', password='P@ssw0rd1', role=User.ROLE_CLINICIAN,
                                    first_name='James', last_name='Wilson')


@pytest.fixture
def patient(db):
    return User.objects.create_user(username='patient_a', password='P@ssw0rd1', role=User.ROLE_PATIENT,
                                    first_name='Alice', last_name='Ames')


@pytest.fixture
def other_patient(db):
    return User.objects.create_user(username='patient_b', password='P@ssw0rd1', role=User.ROLE_PATIENT,
                                    first_name='Bob', last_name='Burns')


@pytest.fixture
def staff(db):
    return User.objects.create_user(username='desk1', password='P@ssw0rd1', role=User.ROLE_STAFF)
