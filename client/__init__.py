from client.access import AccessGate, AccessState
from client.auth import AuthClient
from client.config import ClientSettings
from client.file_list import FileListController
from client.http import ApiError
from client.repository import RepositoryGateway
from client.results import Err, Ok
from client.session import FileSessionStore, MemorySessionStore, Session
from client.upload import UploadController
from client.viewer import build_view
from client.wizards import PasswordReset2FAWizard, Setup2FAWizard
