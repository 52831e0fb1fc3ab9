import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from blogapi.config import Settings, get_settings
from blogapi.database import get_db, init_db, make_engine, make_session_factory
from blogapi.errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    ValidationError,
    register_exception_handlers,
)
from blogapi.models import MAX_ROW_ID, Comment, Post, User, utcnow
from blogapi.schemas import (
    Author,
    CommentCreate,
    CommentCreated,
    CommentOut,
    Message,
    PostCreate,
    PostCreated,
    PostDetail,
    PostSummary,
    PostUpdate,
    PostUpdated,
    Token,
    UserCreate,
    UserCreated,
    UserLogin,
    UserProfile,
)
from blogapi.utils import (
    InvalidTokenError,
    Principal,
    create_access_token,
    hash_password,
    verify_access_token,
    verify_password,
)

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/users/login", auto_error=False)

router = APIRouter(prefix="/api")


def app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    settings: Settings = Depends(app_settings),
) -> Principal:
    if token is None:
        raise AuthError("Not authenticated")
    try:
        return verify_access_token(token, settings)
    except InvalidTokenError:
        raise AuthError("Invalid token", forbidden=True)


def _check_row_id(row_id: int, detail: str):
    # ids outside the INTEGER range of the store cannot name a row
    if not 0 < row_id <= MAX_ROW_ID:
        raise NotFoundError(detail)


def _post_fields(post: Post) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "featured_image": post.featured_image,
        "created_at": post.created_at,
        "updated_at": post.updated_at,
        "user": Author(username=post.owner.username, profile_picture=post.owner.profile_picture),
    }


@router.post("/users", status_code=status.HTTP_201_CREATED, response_model=UserCreated, tags=['Users'])
def register_user(
    user: UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(app_settings),
):
    new_user = User(
        username=user.username,
        email=user.email,
        password=hash_password(user.password, rounds=settings.BCRYPT_ROUNDS),
    )
    db.add(new_user)
    # The unique constraints decide between concurrent registrations
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Registration rejected for duplicate username or email: %s", user.username)
        raise ConflictError("Username or email already exists")
    db.refresh(new_user)

    logger.info("Registered user %s (id=%s)", new_user.username, new_user.id)
    return UserCreated(
        user_id=new_user.id,
        username=new_user.username,
        email=new_user.email,
        created_at=new_user.created_at,
    )


@router.post("/users/login", response_model=Token, tags=['Users'])
def login_user(
    credentials: UserLogin,
    db: Session = Depends(get_db),
    settings: Settings = Depends(app_settings),
):
    user = db.query(User).filter(User.username == credentials.username).first()

    # Same answer for unknown users and wrong passwords
    if not user or not verify_password(credentials.password, user.password):
        logger.info("Failed login for %s", credentials.username)
        raise AuthError("Invalid credentials")

    return Token(token=create_access_token(user.id, user.username, settings))


@router.get("/users/{user_id}", response_model=UserProfile, tags=['Users'])
def read_user(
    user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    _check_row_id(user_id, "User not found")
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User not found")
    return UserProfile(
        id=user.id,
        username=user.username,
        profile_picture=user.profile_picture,
        created_at=user.created_at,
    )


@router.get("/posts", response_model=List[PostSummary], tags=['Posts'])
def list_posts(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    posts = (
        db.query(Post)
        .options(joinedload(Post.owner))
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )
    return [PostSummary(**_post_fields(post)) for post in posts]


@router.post("/posts", status_code=status.HTTP_201_CREATED, response_model=PostCreated, tags=['Posts'])
def create_post(
    post: PostCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    new_post = Post(
        title=post.title,
        content=post.content,
        featured_image=post.featured_image,
        user_id=principal.id,
    )
    db.add(new_post)
    try:
        db.commit()
    except IntegrityError:
        # token outlived the user it was issued for
        db.rollback()
        raise ValidationError("Invalid input")
    db.refresh(new_post)

    logger.info("User %s created post %s", principal.id, new_post.id)
    return PostCreated(
        post_id=new_post.id,
        title=new_post.title,
        created_at=new_post.created_at,
        updated_at=new_post.updated_at,
    )


@router.get("/posts/{post_id}", response_model=PostDetail, tags=['Posts'])
def get_post(post_id: int, db: Session = Depends(get_db)):
    _check_row_id(post_id, "Post not found")
    post = (
        db.query(Post)
        .options(joinedload(Post.owner))
        .filter(Post.id == post_id)
        .first()
    )
    if not post:
        raise NotFoundError("Post not found")
    return PostDetail(**_post_fields(post), content=post.content, user_id=post.user_id)


@router.put("/posts/{post_id}", response_model=PostUpdated, tags=['Posts'])
def update_post(
    post_id: int,
    post_data: PostUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    _check_row_id(post_id, "Post not found")
    changes = post_data.model_dump(exclude_unset=True)
    for required in ("title", "content"):
        if required in changes and changes[required] is None:
            raise ValidationError(f"{required} may not be null")

    updated_at = utcnow()
    values = {getattr(Post, key): value for key, value in changes.items()}
    values[Post.updated_at] = updated_at

    # Filtering on the owner makes someone else's post look like a missing one
    rowcount = (
        db.query(Post)
        .filter(Post.id == post_id, Post.user_id == principal.id)
        .update(values, synchronize_session=False)
    )
    if rowcount == 0:
        db.rollback()
        raise NotFoundError("Post not found")
    db.commit()

    return PostUpdated(updated_at=updated_at)


@router.delete("/posts/{post_id}", response_model=Message, tags=['Posts'])
def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    _check_row_id(post_id, "Post not found")
    rowcount = (
        db.query(Post)
        .filter(Post.id == post_id, Post.user_id == principal.id)
        .delete(synchronize_session=False)
    )
    if rowcount == 0:
        db.rollback()
        raise NotFoundError("Post not found")
    db.commit()

    logger.info("User %s deleted post %s", principal.id, post_id)
    return Message(message="Post successfully deleted")


@router.post(
    "/posts/{post_id}/comments",
    status_code=status.HTTP_201_CREATED,
    response_model=CommentCreated,
    tags=['Comments'],
)
def create_comment(
    post_id: int,
    comment: CommentCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    _check_row_id(post_id, "Post not found")
    # Verify post exists
    post = db.query(Post.id).filter(Post.id == post_id).first()
    if not post:
        raise NotFoundError("Post not found")

    new_comment = Comment(content=comment.content, post_id=post_id, user_id=principal.id)
    db.add(new_comment)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValidationError("Invalid input")
    db.refresh(new_comment)

    return CommentCreated(
        comment_id=new_comment.id,
        content=new_comment.content,
        created_at=new_comment.created_at,
    )


@router.get("/posts/{post_id}/comments", response_model=List[CommentOut], tags=['Comments'])
def get_comments(post_id: int, db: Session = Depends(get_db)):
    _check_row_id(post_id, "Post not found")
    post = db.query(Post.id).filter(Post.id == post_id).first()
    if not post:
        raise NotFoundError("Post not found")

    rows = (
        db.query(Comment.id, Comment.content, Comment.created_at, User.username)
        .outerjoin(User, Comment.user_id == User.id)
        .filter(Comment.post_id == post_id)
        .order_by(Comment.created_at, Comment.id)
        .all()
    )
    return [
        CommentOut(
            comment_id=row.id,
            content=row.content,
            created_at=row.created_at,
            username=row.username,
        )
        for row in rows
    ]


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = make_engine(settings.DATABASE_URL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_db(engine)
        logger.info("Database schema initialized")
        yield
        engine.dispose()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.SessionLocal = make_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    app.include_router(router)

    @app.get("/", tags=['Health'])
    def root():
        return {"message": f"{settings.APP_NAME} is running"}

    return app


app = create_app()


def run():
    import uvicorn

    settings = app.state.settings
    logger.info("Server running on http://%s:%s", settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
