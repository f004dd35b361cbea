"""
Closed enumerations and fixed constants shared across the application.
"""

from enum import Enum


HEALTH_PASS_EXPIRY_HOURS = 24

SUPPORTED_DOCUMENT_FORMATS = [
    "application/pdf",
    "image/jpeg",
    "image/png",
    "image/webp",
]

SUPPORTED_ID_IMAGE_FORMATS = [
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/webp",
]


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"


class AppointmentSpecialty(str, Enum):
    GENERAL_PRACTICE = "general_practice"
    CARDIOLOGY = "cardiology"
    DERMATOLOGY = "dermatology"
    ENDOCRINOLOGY = "endocrinology"
    GASTROENTEROLOGY = "gastroenterology"
    NEUROLOGY = "neurology"
    OBSTETRICS_GYNECOLOGY = "obstetrics_gynecology"
    ONCOLOGY = "oncology"
    OPHTHALMOLOGY = "ophthalmology"
    ORTHOPEDICS = "orthopedics"
    OTOLARYNGOLOGY = "otolaryngology"
    PEDIATRICS = "pediatrics"
    PSYCHIATRY = "psychiatry"
    PULMONOLOGY = "pulmonology"
    UROLOGY = "urology"
    DENTISTRY = "dentistry"
    EMERGENCY = "emergency"
    OTHER = "other"


class HealthPassStatus(str, Enum):
    DRAFT = "draft"
    GENERATED = "generated"
    SHARED = "shared"
    EXPIRED = "expired"


class HealthPassItemType(str, Enum):
    MEDICAL_CONDITION = "medicalCondition"
    MEDICATION = "medication"
    ALLERGY = "allergy"
    LIFESTYLE = "lifestyle"
    DOCUMENT = "document"


class MedicationFrequency(str, Enum):
    ONCE_DAILY = "once_daily"
    TWICE_DAILY = "twice_daily"
    THREE_TIMES_DAILY = "three_times_daily"
    FOUR_TIMES_DAILY = "four_times_daily"
    EVERY_OTHER_DAY = "every_other_day"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    AS_NEEDED = "as_needed"
    OTHER = "other"


class AllergyType(str, Enum):
    DRUG = "drug"
    FOOD = "food"
    ENVIRONMENTAL = "environmental"
    INSECT = "insect"
    LATEX = "latex"
    OTHER = "other"


class AllergySeverity(str, Enum):
    MILD = "mild"
    MODERATE = "moderate"
    SEVERE = "severe"
    LIFE_THREATENING = "life_threatening"


class LifestyleCategory(str, Enum):
    SMOKING = "smoking"
    ALCOHOL = "alcohol"
    EXERCISE = "exercise"
    DIET = "diet"
    SLEEP = "sleep"
    CAFFEINE = "caffeine"
    RECREATIONAL_DRUGS = "recreational_drugs"
    STRESS = "stress"


class HabitFrequency(str, Enum):
    NOT_SET = "not_set"
    NEVER = "never"
    RARELY = "rarely"
    OCCASIONALLY = "occasionally"
    OFTEN = "often"
    DAILY = "daily"


class DocumentType(str, Enum):
    LAB_REPORT = "lab_report"
    MRI_SCAN = "mri_scan"
    CT_SCAN = "ct_scan"
    X_RAY = "x_ray"
    PRESCRIPTION = "prescription"
    MEDICAL_REPORT = "medical_report"
    VACCINATION_RECORD = "vaccination_record"
    OTHER = "other"
