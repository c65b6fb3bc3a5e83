"""Applicant registration: validation, the single-transaction write, capacity."""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import ClassVar

from pydantic import BaseModel, field_validator, model_validator

from schoolportal.auth.credentials import CredentialStore, Session, normalize_email
from schoolportal.core import config
from schoolportal.core.choices import STAFF_APPLICANT_ROLES, AppRole, ApplicationStatus, GradeLevel
from schoolportal.core.errors import DuplicateAccount, ValidationFailed
from schoolportal.datastore import DataStore

logger = logging.getLogger(__name__)

ID_NUMBER_PATTERN = re.compile(r'^[0-9]{13}$')
PHONE_PATTERN = re.compile(r'^(\+27|0)[0-9]{9}$')
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
GMAIL_PATTERN = re.compile(r'@gmail\.com$', re.IGNORECASE)

MIN_PASSWORD_LENGTH = 8
MIN_ADDRESS_LENGTH = 10
AGE_TOLERANCE_YEARS = 1

LEARNER_DOCUMENTS = ('identity_document_url', 'previous_report_url', 'parent_guardian_id_url', 'banking_details_url')
STAFF_DOCUMENTS = ('identity_document_url', 'proof_of_address_url', 'qualification_document_url')


def birth_year_from_id(id_number: str, today: date | None = None) -> int:
    """Full birth year from the two-digit prefix of an identity number.

    Prefixes up to the current two-digit year are read as 2000s, the rest
    as 1900s. Anyone over 100, or born in a year whose last two digits
    exceed the current ones in the 2000s, is placed in the wrong century.
    """
    current_year = (today or date.today()).year
    prefix = int(id_number[:2])
    if prefix <= current_year % 100:
        return 2000 + prefix
    return 1900 + prefix


def validate_age_with_id(age: int, id_number: str, today: date | None = None) -> bool:
    if not ID_NUMBER_PATTERN.match(id_number):
        return False
    current_year = (today or date.today()).year
    calculated_age = current_year - birth_year_from_id(id_number, today)
    return abs(calculated_age - age) <= AGE_TOLERANCE_YEARS


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _check_name(value: str) -> str:
    normalized = value.strip()
    if len(normalized) < 2:
        raise ValueError('Name must be at least 2 characters')
    if len(normalized) > 50:
        raise ValueError('Name must be 50 characters or fewer')
    return normalized


def _check_phone(value: str) -> str:
    cleaned = re.sub(r'\s', '', value)
    if not PHONE_PATTERN.match(cleaned):
        raise ValueError('Phone number must be 10 digits starting with 0 or +27')
    return cleaned


def _check_address(value: str) -> str:
    normalized = value.strip()
    if len(normalized) < MIN_ADDRESS_LENGTH:
        raise ValueError('Please enter a complete address')
    return normalized


def _check_email(value: str) -> str:
    normalized = normalize_email(value)
    if not EMAIL_PATTERN.match(normalized):
        raise ValueError('Please enter a valid email address')
    return normalized


def _check_gmail(value: str) -> str:
    normalized = _check_email(value)
    if not GMAIL_PATTERN.search(normalized):
        raise ValueError('Email must be a Gmail address (@gmail.com)')
    return normalized


class RegistrationRequest(BaseModel):
    MIN_AGE: ClassVar[int] = 0
    MAX_AGE: ClassVar[int] = 150

    first_name: str
    last_name: str
    email: str
    password: str
    confirm_password: str
    phone_number: str
    identity_number: str
    age: int
    physical_address: str
    next_of_kin_contact: str | None = None
    backup_email: str | None = None
    identity_document_url: str | None = None
    proof_of_address_url: str | None = None
    agreed_to_terms: bool = False

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        return _check_name(value)

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _check_gmail(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
        return value

    @field_validator('phone_number')
    @classmethod
    def validate_phone_number(cls, value: str) -> str:
        return _check_phone(value)

    @field_validator('identity_number')
    @classmethod
    def validate_identity_number(cls, value: str) -> str:
        normalized = value.strip()
        if len(normalized) != 13:
            raise ValueError('ID number must be exactly 13 digits')
        if not ID_NUMBER_PATTERN.match(normalized):
            raise ValueError('ID number must contain only digits')
        return normalized

    @field_validator('physical_address')
    @classmethod
    def validate_physical_address(cls, value: str) -> str:
        return _check_address(value)

    @field_validator('next_of_kin_contact', 'backup_email', 'identity_document_url', 'proof_of_address_url', mode='before')
    @classmethod
    def blank_optional_fields(cls, value):
        return _blank_to_none(value)

    @field_validator('next_of_kin_contact')
    @classmethod
    def validate_next_of_kin_contact(cls, value: str | None) -> str | None:
        return None if value is None else _check_phone(value)

    @field_validator('backup_email')
    @classmethod
    def validate_backup_email(cls, value: str | None) -> str | None:
        return None if value is None else _check_email(value)

    @model_validator(mode='after')
    def validate_consistency(self):
        if self.password != self.confirm_password:
            raise ValueError("Passwords don't match")
        if not self.MIN_AGE <= self.age <= self.MAX_AGE:
            raise ValueError(f'Age must be between {self.MIN_AGE} and {self.MAX_AGE}')
        if not validate_age_with_id(self.age, self.identity_number):
            raise ValueError('Age does not match the ID number')
        if not self.agreed_to_terms:
            raise ValueError('Please agree to the terms and conditions')
        return self


class LearnerRegistrationRequest(RegistrationRequest):
    MIN_AGE: ClassVar[int] = 4
    MAX_AGE: ClassVar[int] = 15

    applying_for_grade: GradeLevel
    previous_grade: GradeLevel | None = None
    parent_guardian_name: str
    parent_guardian_phone: str
    parent_guardian_email: str | None = None
    parent_guardian_id_url: str | None = None
    previous_report_url: str | None = None
    banking_details_url: str | None = None

    @field_validator('previous_grade', 'parent_guardian_email', 'parent_guardian_id_url',
                     'previous_report_url', 'banking_details_url', mode='before')
    @classmethod
    def blank_learner_fields(cls, value):
        return _blank_to_none(value)

    @field_validator('parent_guardian_name')
    @classmethod
    def validate_guardian_name(cls, value: str) -> str:
        normalized = value.strip()
        if len(normalized) < 2:
            raise ValueError('Guardian name is required')
        return normalized

    @field_validator('parent_guardian_phone')
    @classmethod
    def validate_guardian_phone(cls, value: str) -> str:
        return _check_phone(value)

    @field_validator('parent_guardian_email')
    @classmethod
    def validate_guardian_email(cls, value: str | None) -> str | None:
        return None if value is None else _check_gmail(value)


class StaffRegistrationRequest(RegistrationRequest):
    MIN_AGE: ClassVar[int] = 21
    MAX_AGE: ClassVar[int] = 70

    role: AppRole
    next_of_kin_contact: str
    grades_teaching: list[GradeLevel] = []
    subjects_teaching: list[str] = []
    qualification_document_url: str | None = None

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: AppRole) -> AppRole:
        if value not in STAFF_APPLICANT_ROLES:
            raise ValueError('Staff applicants must register as teacher, grade head, principal or admin')
        return value

    @field_validator('qualification_document_url', mode='before')
    @classmethod
    def blank_qualification(cls, value):
        return _blank_to_none(value)

    @field_validator('subjects_teaching')
    @classmethod
    def validate_subjects(cls, value: list[str]) -> list[str]:
        return [subject.strip() for subject in value if subject.strip()]


@dataclass(frozen=True)
class RegistrationResult:
    user_id: str
    email: str
    first_name: str
    last_name: str
    role: str
    application_status: str
    session: Session | None


@dataclass(frozen=True)
class GradeCapacity:
    grade: str
    max_capacity: int
    current_count: int

    @property
    def is_full(self) -> bool:
        # Grades without any configured class carry no capacity limit
        return self.max_capacity > 0 and self.current_count >= self.max_capacity


def missing_documents(request: RegistrationRequest, required: tuple[str, ...]) -> list[str]:
    return [name for name in required if not getattr(request, name)]


def initial_status(role: str) -> str:
    if role == AppRole.ADMIN.value and config.AUTO_ACCEPT_ADMIN_REGISTRATIONS:
        return ApplicationStatus.ACCEPTED.value
    return ApplicationStatus.PENDING.value


async def grade_capacity(store: DataStore) -> list[GradeCapacity]:
    classes = await store.select('classes')
    capacities = []
    for grade in GradeLevel:
        grade_classes = [c for c in classes if c.grade == grade.value]
        capacities.append(
            GradeCapacity(
                grade=grade.value,
                max_capacity=sum(
                    c.max_capacity if c.max_capacity is not None else config.DEFAULT_CLASS_CAPACITY
                    for c in grade_classes
                ),
                current_count=sum(c.current_count or 0 for c in grade_classes),
            )
        )
    return capacities


async def _claim_credential(credentials: CredentialStore, email: str, password: str):
    """Create the credential, or reuse one that never finished registering."""
    existing = await credentials.store.select_one('users', email=normalize_email(email))
    if existing is None:
        return await credentials.create_credential(email, password)

    if await credentials.verify_password(email, password) is None:
        raise DuplicateAccount()
    if await credentials.store.select_one('profiles', user_id=existing.id) is not None:
        raise DuplicateAccount()

    logger.info('Completing registration for existing credential %s', existing.id)
    return existing


async def _register(
    store: DataStore,
    credentials: CredentialStore,
    request: RegistrationRequest,
    role: str,
    registration_table: str,
    registration_values: dict,
) -> RegistrationResult:
    application_status = initial_status(role)

    # Credential, profile, role assignment and registration commit together
    async with store.transaction():
        user = await _claim_credential(credentials, request.email, request.password)
        await store.insert(
            'profiles',
            user_id=user.id,
            first_name=request.first_name,
            last_name=request.last_name,
            email=request.email,
            phone_number=request.phone_number,
            identity_number=request.identity_number,
            age=request.age,
            physical_address=request.physical_address,
            next_of_kin_contact=request.next_of_kin_contact,
            backup_email=request.backup_email,
            identity_document_url=request.identity_document_url,
            proof_of_address_url=request.proof_of_address_url,
        )
        await store.insert('user_roles', user_id=user.id, role=role, application_status=application_status)
        await store.insert(registration_table, user_id=user.id, **registration_values)

    if role == AppRole.ADMIN.value and application_status == ApplicationStatus.ACCEPTED.value:
        logger.warning(
            'Auto-accepted admin registration for %s; set AUTO_ACCEPT_ADMIN_REGISTRATIONS=false to require approval',
            request.email,
        )
    session = await credentials.open_session(user) if user.email_confirmed else None
    logger.info('Registered %s applicant %s with status %s', role, user.id, application_status)

    return RegistrationResult(
        user_id=user.id,
        email=request.email,
        first_name=request.first_name,
        last_name=request.last_name,
        role=role,
        application_status=application_status,
        session=session,
    )


async def register_learner(
    store: DataStore,
    request: LearnerRegistrationRequest,
    credentials: CredentialStore | None = None,
) -> RegistrationResult:
    missing = missing_documents(request, LEARNER_DOCUMENTS)
    if missing:
        raise ValidationFailed({name: 'This document is required' for name in missing}, 'Please upload all required documents.')

    capacity = {c.grade: c for c in await grade_capacity(store)}
    if capacity[request.applying_for_grade.value].is_full:
        raise ValidationFailed({'applying_for_grade': 'Grade is full'}, 'The selected grade is full.')

    return await _register(
        store,
        credentials or CredentialStore(store),
        request,
        AppRole.LEARNER.value,
        'learner_registrations',
        {
            'applying_for_grade': request.applying_for_grade.value,
            'previous_grade': request.previous_grade.value if request.previous_grade else None,
            'parent_guardian_name': request.parent_guardian_name,
            'parent_guardian_phone': request.parent_guardian_phone,
            'parent_guardian_email': request.parent_guardian_email,
            'parent_guardian_id_url': request.parent_guardian_id_url,
            'previous_report_url': request.previous_report_url,
            'banking_details_url': request.banking_details_url,
        },
    )


async def register_staff(
    store: DataStore,
    request: StaffRegistrationRequest,
    credentials: CredentialStore | None = None,
) -> RegistrationResult:
    missing = missing_documents(request, STAFF_DOCUMENTS)
    if missing:
        raise ValidationFailed({name: 'This document is required' for name in missing}, 'Please upload all required documents.')

    return await _register(
        store,
        credentials or CredentialStore(store),
        request,
        request.role.value,
        'staff_registrations',
        {
            'qualification_document_url': request.qualification_document_url,
            'grades_teaching': [grade.value for grade in request.grades_teaching],
            'subjects_teaching': list(request.subjects_teaching),
        },
    )
