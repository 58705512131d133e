# Database models
from .user import User
from .company import Company, CompanyMember
from .job import Job
from .recruitment_step import RecruitmentStep
from .application import Application
from .application_progress import ApplicationProgress
