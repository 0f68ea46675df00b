"""Application container: builds stores and services from settings"""

from pathlib import Path
from typing import Optional

from .auth.service import AuthService
from .core.expiry import ExpirySweeper
from .core.ledger import MessageLedger
from .core.locks import KeyedLocks
from .core.membership import AdminPrincipal, MembershipAuthority
from .core.notifier import Broadcaster
from .services.admin_service import AdminService
from .services.thread_service import ThreadService
from .stores import MessageStore, SessionStore, ThreadStore, UserStore
from .utils.config import Settings, load_settings
from .utils.logger import get_logger, setup_logger

logger = get_logger(__name__)


class EventThreadsApp:
    """Main application class wiring persistence, authority and services"""

    def __init__(self, settings: Optional[Settings] = None, configure_logging: bool = True):
        self.settings = settings or load_settings()
        if configure_logging:
            log = self.settings.logging
            setup_logger(
                log_level=log.level,
                log_format=log.format,
                file_path=log.file_path,
                max_bytes=log.max_bytes,
                backup_count=log.backup_count,
            )

        data_dir = Path(self.settings.storage.data_dir)
        data_dir.mkdir(parents=True, exist_ok=True)

        self.user_store = UserStore(data_dir)
        self.thread_store = ThreadStore(data_dir)
        self.message_store = MessageStore(data_dir)
        self.session_store = SessionStore(data_dir)

        self.admin = AdminPrincipal.from_settings(self.settings.admin)
        self.authority = MembershipAuthority(self.admin)
        self.broadcaster = Broadcaster()
        self.locks = KeyedLocks()
        self.ledger = MessageLedger(self.message_store)

        self.thread_service = ThreadService(
            threads=self.thread_store,
            users=self.user_store,
            ledger=self.ledger,
            authority=self.authority,
            broadcaster=self.broadcaster,
            locks=self.locks,
        )
        self.admin_service = AdminService(
            threads=self.thread_store,
            users=self.user_store,
            ledger=self.ledger,
            authority=self.authority,
        )
        self.auth_service = AuthService(
            users=self.user_store,
            sessions=self.session_store,
            admin=self.admin,
            settings=self.settings.auth,
        )
        self.sweeper = ExpirySweeper(
            threads=self.thread_store,
            messages=self.message_store,
            broadcaster=self.broadcaster,
            sessions=self.session_store,
            interval_seconds=self.settings.expiry.sweep_interval_seconds,
        )

        logger.info(
            "EventThreads initialized",
            app_name=self.settings.app.name,
            version=self.settings.app.version,
            environment=self.settings.app.environment,
            data_dir=str(data_dir),
            admin_login_enabled=self.admin.login_enabled,
        )
