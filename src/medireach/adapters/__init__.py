"""Adapters for converting database rows to GeoRecord."""

from medireach.adapters.blood_banks import BloodBankAdapter
from medireach.adapters.camps import CampAdapter
from medireach.adapters.donors import DonorAdapter
from medireach.adapters.hospitals import HospitalAdapter

ADAPTER_MAP = {
    "hospitals": HospitalAdapter(),
    "blood_banks": BloodBankAdapter(),
    "camps": CampAdapter(),
    "donors": DonorAdapter(),
}

__all__ = ["ADAPTER_MAP", "HospitalAdapter", "BloodBankAdapter", "CampAdapter", "DonorAdapter"]
