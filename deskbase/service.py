"""Data-access service wrapping the ORM behind an explicit lifecycle."""

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import List, Optional
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload, sessionmaker
from fastapi.concurrency import run_in_threadpool

from deskbase.database import create_db_engine, create_session_factory, get_database_url, init_db
from deskbase.errors import ConnectionFailureError, ConstraintViolationError, NotFoundError, NotInitializedError
from deskbase.models import User, Post, Setting
from deskbase.schemas import UserRead, UserWithPosts, PostRead, PostWithAuthor, SettingRead

# Configure logging
logger = logging.getLogger(__name__)


class ServiceState(str, Enum):
    """Lifecycle states of the data-access service."""

    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    CLOSED = "closed"


class DatabaseService:
    """
    Owns the database engine and exposes CRUD operations for users,
    posts and settings.

    The service starts uninitialized. initialize() connects and
    synchronizes the schema, close() releases the engine. Data operations
    raise NotInitializedError in any state but INITIALIZED.

    Every operation is a coroutine; the blocking ORM work runs on the
    thread pool with one session per call, and results come back as
    detached pydantic records.
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or get_database_url()
        self.state = ServiceState.UNINITIALIZED
        self._engine = None
        self._session_factory: Optional[sessionmaker] = None
        self._lifecycle_lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self.state is ServiceState.INITIALIZED

    @property
    def session_factory(self) -> sessionmaker:
        """Session factory of the open database."""
        self._ensure_initialized()
        return self._session_factory

    # Lifecycle
    async def initialize(self):
        """
        Connect to the database and synchronize the schema.

        Raises:
            ConnectionFailureError: If the database cannot be opened or
                synchronized; the state is left unchanged
        """
        if self.initialized:
            logger.info("Database service already initialized")
            return
        await run_in_threadpool(self._open)

    def _open(self):
        with self._lifecycle_lock:
            # Another initialize() may have finished while this one waited
            if self.initialized:
                logger.info("Database service already initialized")
                return

            logger.info("Initializing database...")
            engine = None
            try:
                engine = create_db_engine(self.database_url)
                with engine.connect() as connection:
                    connection.execute(text("SELECT 1"))
                logger.info("Database connection established successfully")
                init_db(engine)
            except Exception as e:
                # Driver import errors and bad connect args count as well
                logger.error(f"Failed to initialize database: {e}")
                if engine is not None:
                    engine.dispose()
                raise ConnectionFailureError(f"Failed to initialize database: {e}") from e

            self._engine = engine
            self._session_factory = create_session_factory(engine)
            self.state = ServiceState.INITIALIZED
            logger.info("Database service initialized successfully")

    async def close(self):
        """Release the database engine. Does nothing unless initialized."""
        if not self.initialized:
            return
        await run_in_threadpool(self._shutdown)

    def _shutdown(self):
        with self._lifecycle_lock:
            if not self.initialized:
                return
            engine = self._engine
            self._engine = None
            self._session_factory = None
            self.state = ServiceState.CLOSED
            engine.dispose()
            logger.info("Database connection closed")

    def _ensure_initialized(self):
        if not self.initialized:
            raise NotInitializedError()

    @contextmanager
    def _session(self):
        db: Session = self.session_factory()
        try:
            yield db
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Constraint violation: {e.orig}")
            raise ConstraintViolationError(str(e.orig)) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    async def _run(self, func, *args):
        self._ensure_initialized()
        return await run_in_threadpool(func, *args)

    # User operations
    async def create_user(self, name: str, email: str) -> UserRead:
        return await self._run(self._create_user, name, email)

    async def get_user(self, user_id: int) -> Optional[UserWithPosts]:
        return await self._run(self._get_user, user_id)

    async def get_all_users(self) -> List[UserWithPosts]:
        return await self._run(self._get_all_users)

    async def update_user(self, user_id: int, name: str, email: str) -> UserRead:
        return await self._run(self._update_user, user_id, name, email)

    async def delete_user(self, user_id: int) -> dict:
        """Delete a user; SQLite cascades the delete to the user's posts."""
        return await self._run(self._delete_user, user_id)

    def _create_user(self, name, email):
        with self._session() as db:
            user = User(name=name, email=email)
            db.add(user)
            db.commit()
            db.refresh(user)
            logger.info(f"Created user with ID: {user.id}")
            return UserRead.model_validate(user)

    def _get_user(self, user_id):
        with self._session() as db:
            user = (
                db.query(User)
                .options(selectinload(User.posts))
                .filter(User.id == user_id)
                .first()
            )
            if user is None:
                logger.debug(f"User not found: {user_id}")
                return None
            return UserWithPosts.model_validate(user)

    def _get_all_users(self):
        with self._session() as db:
            users = (
                db.query(User)
                .options(selectinload(User.posts))
                .order_by(User.created_at.desc(), User.id.desc())
                .all()
            )
            logger.debug(f"Found {len(users)} users")
            return [UserWithPosts.model_validate(user) for user in users]

    def _find_user(self, db, user_id):
        user = db.query(User).filter(User.id == user_id).first()
        if not user:
            logger.warning(f"User not found: {user_id}")
            raise NotFoundError("User not found")
        return user

    def _update_user(self, user_id, name, email):
        with self._session() as db:
            user = self._find_user(db, user_id)
            user.name = name
            user.email = email
            db.commit()
            db.refresh(user)
            logger.info(f"User {user_id} updated successfully")
            return UserRead.model_validate(user)

    def _delete_user(self, user_id):
        with self._session() as db:
            user = self._find_user(db, user_id)
            db.delete(user)
            db.commit()
            logger.info(f"User {user_id} deleted successfully")
            return {"success": True}

    # Post operations
    async def create_post(
        self,
        title: str,
        content: Optional[str],
        author_id: int,
        published: bool = False,
    ) -> PostRead:
        return await self._run(self._create_post, title, content, author_id, published)

    async def get_post(self, post_id: int) -> Optional[PostWithAuthor]:
        return await self._run(self._get_post, post_id)

    async def get_all_posts(self) -> List[PostWithAuthor]:
        return await self._run(self._get_all_posts)

    async def update_post(
        self,
        post_id: int,
        title: str,
        content: Optional[str],
        published: bool,
    ) -> PostRead:
        """Replace title, content and published on an existing post."""
        return await self._run(self._update_post, post_id, title, content, published)

    async def delete_post(self, post_id: int) -> dict:
        return await self._run(self._delete_post, post_id)

    def _create_post(self, title, content, author_id, published):
        with self._session() as db:
            post = Post(
                title=title,
                content=content,
                author_id=author_id,
                published=published,
            )
            db.add(post)
            db.commit()
            db.refresh(post)
            logger.info(f"Created post with ID: {post.id}, author: {author_id}")
            return PostRead.model_validate(post)

    def _get_post(self, post_id):
        with self._session() as db:
            post = (
                db.query(Post)
                .options(joinedload(Post.author))
                .filter(Post.id == post_id)
                .first()
            )
            if post is None:
                logger.debug(f"Post not found: {post_id}")
                return None
            return PostWithAuthor.model_validate(post)

    def _get_all_posts(self):
        with self._session() as db:
            posts = (
                db.query(Post)
                .options(joinedload(Post.author))
                .order_by(Post.created_at.desc(), Post.id.desc())
                .all()
            )
            logger.debug(f"Found {len(posts)} posts")
            return [PostWithAuthor.model_validate(post) for post in posts]

    def _find_post(self, db, post_id):
        post = db.query(Post).filter(Post.id == post_id).first()
        if not post:
            logger.warning(f"Post not found: {post_id}")
            raise NotFoundError("Post not found")
        return post

    def _update_post(self, post_id, title, content, published):
        with self._session() as db:
            post = self._find_post(db, post_id)
            post.title = title
            post.content = content
            post.published = published
            db.commit()
            db.refresh(post)
            logger.info(f"Post {post_id} updated successfully")
            return PostRead.model_validate(post)

    def _delete_post(self, post_id):
        with self._session() as db:
            post = self._find_post(db, post_id)
            db.delete(post)
            db.commit()
            logger.info(f"Post {post_id} deleted successfully")
            return {"success": True}

    # Settings operations
    async def set_setting(self, key: str, value: str) -> SettingRead:
        """
        Store a setting.

        Creates the key when absent. An existing key is only written when
        the value differs, so resubmitting the same value leaves
        updated_at untouched.
        """
        return await self._run(self._set_setting, key, value)

    async def get_setting(self, key: str) -> Optional[str]:
        return await self._run(self._get_setting, key)

    async def get_all_settings(self) -> List[SettingRead]:
        return await self._run(self._get_all_settings)

    def _set_setting(self, key, value):
        with self._session() as db:
            setting = db.query(Setting).filter(Setting.key == key).first()
            if setting is None:
                created = self._insert_setting(db, key, value)
                if created is not None:
                    return SettingRead.model_validate(created)
                # A concurrent call created the key first
                setting = db.query(Setting).filter(Setting.key == key).first()

            if setting.value != value:
                setting.value = value
                db.commit()
                db.refresh(setting)
                logger.info(f"Updated setting: {key}")
            else:
                logger.debug(f"Setting {key} unchanged")
            return SettingRead.model_validate(setting)

    def _insert_setting(self, db, key, value):
        """Insert a new setting, or return None if the key already exists.

        Any other integrity failure (e.g. a null value) is re-raised.
        """
        setting = Setting(key=key, value=value)
        db.add(setting)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            if db.query(Setting).filter(Setting.key == key).first() is None:
                raise
            logger.debug(f"Setting {key} created concurrently, updating instead")
            return None
        db.refresh(setting)
        logger.info(f"Created setting: {key}")
        return setting

    def _get_setting(self, key):
        with self._session() as db:
            setting = db.query(Setting).filter(Setting.key == key).first()
            return setting.value if setting is not None else None

    def _get_all_settings(self):
        with self._session() as db:
            settings = db.query(Setting).all()
            return [SettingRead.model_validate(setting) for setting in settings]
