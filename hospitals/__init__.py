"""
Hospitals Package
Normalization, specialty classification and ranking of nearby hospitals
"""

from .models import HospitalRecord
from .service import HospitalService
from .locator import HospitalLocator

__all__ = ['HospitalRecord', 'HospitalService', 'HospitalLocator']
