import logging
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, Depends, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

from auth.dependencies import (
    get_current_user,
    get_current_student,
    get_current_staff,
    get_current_admin,
)
from auth.google_httpx import (
    GoogleAuthError,
    get_google_login_url,
    exchange_code_for_token,
    get_google_user_info,
)
from auth.schemas import (
    RegisterSchema,
    LoginSchema,
    RefreshRequest,
    LogoutRequest,
    UserCreateSchema,
    RoleUpdateSchema,
    ProfileUpdateSchema,
    ProfileImageSchema,
)
from auth.security import (
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
)

from db.database import get_db
from db.init_db import init_db
from db.models.refresh_tokens import RefreshToken
from db.models.users import User

from quiz.config import CORS_ORIGINS, LOG_LEVEL, SECTIONS, DEFAULT_SECTION_TIMERS
from quiz.exceptions import QuizPortalError
from quiz.schemas import (
    QuizIn,
    JoinRequest,
    AttemptSubmission,
    ScoreUpdate,
    ProgressUpdate,
    AnnouncementIn,
    MessageIn,
)
from quiz.quiz_manager import quiz_manager
from quiz.attempt_manager import attempt_manager, serialize_attempt
from quiz.progress_manager import progress_manager, serialize_progress
from quiz.user_manager import user_manager, serialize_user
from quiz.announcements import (
    announcement_manager,
    message_manager,
    serialize_announcement,
    serialize_message,
)


logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("quiz_portal")


app = FastAPI(
    title="Quiz Portal API",
    version="1.0.0",
    description=(
        "Quiz and assessment portal: teachers author quizzes, students attempt "
        "them and review results, admins manage accounts."
    ),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class LogRequestMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
        return response


app.add_middleware(LogRequestMiddleware)


@app.on_event("startup")
def create_tables():
    init_db()


@app.exception_handler(QuizPortalError)
async def quiz_portal_error_handler(request: Request, exc: QuizPortalError):
    logger.info("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _issue_tokens(db: Session, user: User) -> Dict[str, Any]:
    access_token = create_access_token({"sub": user.id, "role": user.role})
    refresh_token = create_refresh_token({"sub": user.id})

    db.add(RefreshToken(user_id=user.id, token=refresh_token))
    db.commit()

    return {
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "bearer",
    }


# ============ Auth ============

@app.post("/register", status_code=status.HTTP_201_CREATED)
def register(data: RegisterSchema, db: Session = Depends(get_db)):
    user = user_manager.register_student(db, data)
    return {
        "message": "User registered successfully",
        "user_id": user.id,
    }


@app.post("/login")
def login(data: LoginSchema, db: Session = Depends(get_db)):
    user = user_manager.authenticate(db, data.username, data.password)
    if not user:
        raise HTTPException(status_code=400, detail="Invalid credentials")

    logger.info("User %s logged in", user.id)
    return _issue_tokens(db, user)


@app.get("/auth/google")
def google_login():
    return RedirectResponse(get_google_login_url())


@app.get("/auth/google/callback")
async def google_callback(code: str, db: Session = Depends(get_db)):
    try:
        token_data = await exchange_code_for_token(code)
        user_info = await get_google_user_info(token_data["access_token"])
        google_id = user_info["sub"]
    except (GoogleAuthError, KeyError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    user = user_manager.get_or_create_google_user(
        db,
        google_id=google_id,
        email=user_info.get("email"),
        name=user_info.get("name"),
    )

    tokens = _issue_tokens(db, user)
    tokens["message"] = "Google login successful"
    return tokens


@app.post("/refresh")
def refresh_token_endpoint(data: RefreshRequest, db: Session = Depends(get_db)):
    payload = decode_refresh_token(data.refresh_token)
    if not payload or payload.get("type") != "refresh" or payload.get("sub") is None:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    user_id = int(payload["sub"])

    token_in_db = (
        db.query(RefreshToken)
        .filter(
            RefreshToken.token == data.refresh_token,
            RefreshToken.user_id == user_id,
        )
        .first()
    )
    if not token_in_db:
        raise HTTPException(status_code=401, detail="Refresh token not found or revoked")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    new_access_token = create_access_token({"sub": user.id, "role": user.role})
    new_refresh_token = create_refresh_token({"sub": user.id})

    # rotate
    token_in_db.token = new_refresh_token
    db.commit()

    return {
        "access_token": new_access_token,
        "refresh_token": new_refresh_token,
        "token_type": "bearer",
    }


@app.post("/logout")
def logout(
    data: LogoutRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    token_in_db = db.query(RefreshToken).filter(
        RefreshToken.token == data.refresh_token,
        RefreshToken.user_id == current_user.id,
    ).first()

    if not token_in_db:
        return {"message": "Token already invalid or not found"}

    db.delete(token_in_db)
    db.commit()

    return {"message": "Logged out successfully"}


@app.post("/logout-all")
def logout_all(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    db.query(RefreshToken).filter(RefreshToken.user_id == current_user.id).delete()
    db.commit()

    return {"message": "Logged out from all devices"}


@app.get("/me")
def get_me(current_user: User = Depends(get_current_user)):
    return serialize_user(current_user)


@app.put("/me/profile")
def update_my_profile(
    data: ProfileUpdateSchema,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = user_manager.update_profile(db, current_user, data)
    return {"success": True, "user": serialize_user(user)}


@app.put("/me/profile-image")
def update_my_profile_image(
    data: ProfileImageSchema,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user_manager.update_profile_image(db, current_user, data.image_url)
    return {"success": True}


@app.get("/users/role")
def get_user_role(
    email: str = "",
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"role": user_manager.role_for_email(db, email)}


# ============ Reference data ============

@app.get("/sections")
def list_sections():
    return [
        {"code": code, "name": name, "default_timer": DEFAULT_SECTION_TIMERS[code]}
        for code, name in SECTIONS.items()
    ]


# ============ Quizzes ============

@app.post("/quizzes", status_code=status.HTTP_201_CREATED)
def create_quiz(
    payload: QuizIn,
    current_user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    quiz = quiz_manager.create_quiz(db, current_user, payload)
    return {"message": "Quiz saved successfully!", "quiz": quiz_manager.preview_quiz(quiz)}


@app.get("/quizzes")
def list_quizzes(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"quizzes": quiz_manager.list_quizzes(db, current_user)}


@app.post("/quizzes/join")
def join_quiz(
    data: JoinRequest,
    current_student: User = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    quiz = quiz_manager.join_by_code(db, data.access_code)
    return {"quiz_id": quiz.id, "quiz_title": quiz.quiz_title}


@app.get("/quizzes/{quiz_id}")
def get_quiz(
    quiz_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return quiz_manager.get_quiz_for_user(db, current_user, quiz_id)


@app.get("/quizzes/{quiz_id}/preview")
def preview_quiz(
    quiz_id: int,
    current_user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    return quiz_manager.preview_quiz(quiz_manager.get_quiz(db, quiz_id))


@app.put("/quizzes/{quiz_id}")
def update_quiz(
    quiz_id: int,
    payload: QuizIn,
    current_user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    quiz = quiz_manager.update_quiz(db, current_user, quiz_id, payload)
    return {"message": "Quiz updated successfully!", "quiz": quiz_manager.preview_quiz(quiz)}


@app.delete("/quizzes/{quiz_id}")
def delete_quiz(
    quiz_id: int,
    current_user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    quiz_manager.delete_quiz(db, current_user, quiz_id)
    return {"success": True}


@app.post("/quizzes/{quiz_id}/access-code")
def regenerate_access_code(
    quiz_id: int,
    current_user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    quiz = quiz_manager.regenerate_access_code(db, current_user, quiz_id)
    return {"quiz_id": quiz.id, "access_code": quiz.access_code}


# ============ Attempts ============

@app.post("/quizzes/{quiz_id}/attempts", status_code=status.HTTP_201_CREATED)
def submit_attempt(
    quiz_id: int,
    submission: AttemptSubmission,
    current_student: User = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    quiz = quiz_manager.get_quiz(db, quiz_id)
    attempt = attempt_manager.submit_attempt(db, quiz, current_student, submission.answers)
    return attempt_manager.get_result(db, attempt.id, current_student)


@app.get("/quizzes/{quiz_id}/attempts")
def list_quiz_attempts(
    quiz_id: int,
    current_user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    return attempt_manager.list_attempts_for_quiz(db, quiz_id)


@app.get("/attempts/{attempt_id}")
def get_attempt_result(
    attempt_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return attempt_manager.get_result(db, attempt_id, current_user)


@app.patch("/attempts/{attempt_id}/score")
def update_attempt_score(
    attempt_id: int,
    data: ScoreUpdate,
    current_user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    attempt = attempt_manager.update_score(db, attempt_id, data.score, current_user)
    return serialize_attempt(attempt)


@app.get("/me/attempts")
def get_my_attempts(
    current_student: User = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    return {"results": attempt_manager.list_student_attempts(db, current_student)}


@app.get("/me/stats")
def get_my_stats(
    current_student: User = Depends(get_current_student),
    db: Session = Depends(get_db),
):
    return attempt_manager.student_stats(db, current_student)


@app.get("/analytics/attempts")
def attempts_analytics(
    current_user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    return {"attempts_by_day": attempt_manager.attempts_by_day(db)}


# ============ Quiz progress ============

@app.get("/quizzes/{quiz_id}/progress")
def get_progress(
    quiz_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    progress = progress_manager.get_progress(db, quiz_id, current_user.id)
    return {"data": serialize_progress(progress)}


@app.put("/quizzes/{quiz_id}/progress")
def save_progress(
    quiz_id: int,
    update: ProgressUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    quiz_manager.get_quiz(db, quiz_id)
    progress = progress_manager.save_progress(db, quiz_id, current_user.id, update)
    return {"success": True, "data": serialize_progress(progress)}


@app.delete("/quizzes/{quiz_id}/progress")
def clear_progress(
    quiz_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    progress_manager.clear_progress(db, quiz_id, current_user.id)
    return {"success": True}


# ============ Users ============

@app.get("/students")
def list_students(
    current_user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    return {"students": [serialize_user(u) for u in user_manager.list_by_role(db, "student")]}


@app.get("/teachers")
def list_teachers(
    current_user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    return {"teachers": [serialize_user(u) for u in user_manager.list_by_role(db, "teacher")]}


# ============ Admin ============

@app.post("/admin/users", status_code=status.HTTP_201_CREATED)
def admin_create_user(
    data: UserCreateSchema,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    user = user_manager.create_user(db, data)
    return {"message": "User created successfully", "user": serialize_user(user)}


@app.get("/admin/users")
def admin_list_users(
    limit: int = 10,
    offset: int = 0,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    return [serialize_user(u) for u in user_manager.list_users(db, limit=limit, offset=offset)]


@app.delete("/admin/users/{user_id}")
def admin_delete_user(
    user_id: int,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    user_manager.delete_user(db, current_admin, user_id)
    return {"success": True}


@app.put("/admin/users/{user_id}/role")
def admin_update_role(
    user_id: int,
    data: RoleUpdateSchema,
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    user_manager.update_role(db, current_admin, user_id, data.role)
    return {"success": True}


@app.get("/admin/stats")
def admin_stats(
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return user_manager.role_counts(db)


@app.get("/admin/count")
def admin_count(
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return {"count": user_manager.role_counts(db)["admin"]}


# ============ Announcements / feedback ============

@app.get("/announcements")
def list_announcements(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return {"announcements": [serialize_announcement(a) for a in announcement_manager.list_for(db, current_user)]}


@app.post("/announcements", status_code=status.HTTP_201_CREATED)
def create_announcement(
    data: AnnouncementIn,
    current_user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    announcement = announcement_manager.create(db, current_user, data)
    return serialize_announcement(announcement)


@app.delete("/announcements/{announcement_id}")
def deactivate_announcement(
    announcement_id: int,
    current_user: User = Depends(get_current_staff),
    db: Session = Depends(get_db),
):
    announcement_manager.deactivate(db, announcement_id)
    return {"success": True}


@app.post("/messages", status_code=status.HTTP_201_CREATED)
def add_message(data: MessageIn, db: Session = Depends(get_db)):
    message_manager.add(db, data)
    return {"success": True}


@app.get("/messages")
def list_messages(
    current_admin: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return {"messages": [serialize_message(m) for m in message_manager.list_all(db)]}
