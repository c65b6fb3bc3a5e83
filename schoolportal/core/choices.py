"""Closed value sets for roles, application states and grades."""

import enum


class AppRole(str, enum.Enum):
    LEARNER = 'learner'
    TEACHER = 'teacher'
    GRADE_HEAD = 'grade_head'
    PRINCIPAL = 'principal'
    ADMIN = 'admin'
    SGB = 'sgb'
    FINANCE = 'finance'


class ApplicationStatus(str, enum.Enum):
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'


class GradeLevel(str, enum.Enum):
    R = 'R'
    ONE = '1'
    TWO = '2'
    THREE = '3'
    FOUR = '4'
    FIVE = '5'
    SIX = '6'
    SEVEN = '7'


class ClassSection(str, enum.Enum):
    A = 'A'
    B = 'B'
    C = 'C'


# Applicant types offered by the registration form.
STAFF_APPLICANT_ROLES = (AppRole.TEACHER, AppRole.GRADE_HEAD, AppRole.PRINCIPAL, AppRole.ADMIN)


class MessageType(str, enum.Enum):
    MESSAGE = 'message'
    SUMMON = 'summon'
    DOCUMENT = 'document'
