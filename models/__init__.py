from models.base import Base

from models.user import User
from models.verification import VerificationCode
from models.repository_file import RepositoryFile
