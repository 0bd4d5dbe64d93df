"""API routes for journal coach"""
import logging
from typing import List
from fastapi import APIRouter, Depends, Query, Request, Response, status

from journal_coach.api.models import (
    CreateUserRequest, ProgressResponse,
    JournalRequest, JournalResponse,
    DailyArtifactResponse, ChallengeCompletionResponse,
    ReportRequest,
    PostResponse, LikeResponse,
    ChatRequest, ChatResponse,
    HealthCheckResponse,
)
from journal_coach.api.auth import require_admin, verify_api_key
from journal_coach.api.middleware import limiter
from journal_coach.exceptions import StoreUnavailableError
from journal_coach.gamification.leaderboard import LeaderboardRow, get_leaderboard
from journal_coach.gamification.xp_system import calculate_level_from_xp, get_badge_count
from journal_coach.models import CommunityPost, DailyArtifact, ReportSnapshot, UserProgress
from journal_coach.services.container import ServiceContainer, get_container
from journal_coach.utils.datetime_helpers import now_utc

logger = logging.getLogger(__name__)

router = APIRouter()


def container() -> ServiceContainer:
    return get_container()


def _progress_response(progress: UserProgress) -> ProgressResponse:
    level_info = calculate_level_from_xp(progress.xp)
    return ProgressResponse(
        user_id=progress.user_id,
        display_name=progress.display_name,
        xp=progress.xp,
        level=progress.level,
        xp_in_current_level=level_info["xp_in_current_level"],
        xp_to_next_level=level_info["xp_to_next_level"],
        badges=get_badge_count(progress.xp),
        streak=progress.streak,
        last_activity_date=progress.last_activity_date,
        total_entries=progress.total_entries
    )


def _artifact_response(artifact: DailyArtifact) -> DailyArtifactResponse:
    return DailyArtifactResponse(
        user_id=artifact.user_id,
        day=artifact.day,
        kind=artifact.kind,
        content=artifact.content,
        completed=artifact.completed,
        is_fallback=artifact.is_fallback
    )


def _post_response(post: CommunityPost) -> PostResponse:
    return PostResponse(
        id=post.id,
        author_id=post.author_id,
        author_name=post.author_name,
        journal_id=post.journal_id,
        text=post.text,
        summary=post.summary,
        created_at=post.created_at,
        like_count=post.like_count
    )


# ==========================================
# Accounts and progress
# ==========================================

@router.post("/api/v1/users", response_model=ProgressResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_user(
    request: Request,
    body: CreateUserRequest,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """Open an account with zeroed progress; repeating the call is harmless (Rate limit: 20/minute)"""
    progress = await services.ledger.open_account(body.user_id, body.display_name)
    logger.info(f"Opened account via API: {body.user_id}")
    return _progress_response(progress)


@router.get("/api/v1/users/{user_id}/progress", response_model=ProgressResponse)
@limiter.limit("60/minute")
async def get_progress(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """XP, level and streak (Rate limit: 60/minute)"""
    return _progress_response(await services.ledger.get_progress(user_id))


# ==========================================
# Journaling
# ==========================================

@router.post("/api/v1/users/{user_id}/journals", response_model=JournalResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def submit_journal(
    request: Request,
    user_id: str,
    body: JournalRequest,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """Submit a journal entry (Rate limit: 20/minute, summaries call the text service)"""
    result = await services.journal_service.submit_journal(
        user_id,
        answers=body.answers,
        questions=body.questions,
        share=body.share,
        display_name=body.display_name,
        entry_id=body.entry_id
    )
    return JournalResponse(
        entry_id=result.entry.id,
        summary=result.entry.summary,
        xp_awarded=result.xp_awarded,
        xp=result.progress.xp,
        level=result.level,
        leveled_up=result.leveled_up,
        streak=result.progress.streak,
        message=result.message,
        post_id=result.post_id
    )


@router.get("/api/v1/users/{user_id}/daily/questions", response_model=DailyArtifactResponse)
@limiter.limit("30/minute")
async def get_daily_questions(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """Today's reflective questions, generated once per day (Rate limit: 30/minute)"""
    await services.ledger.get_progress(user_id)
    return _artifact_response(await services.journal_service.daily_questions(user_id))


@router.get("/api/v1/users/{user_id}/daily/challenge", response_model=DailyArtifactResponse)
@limiter.limit("30/minute")
async def get_daily_challenge(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """Today's challenge, generated once per day (Rate limit: 30/minute)"""
    await services.ledger.get_progress(user_id)
    return _artifact_response(await services.journal_service.daily_challenge(user_id))


@router.post("/api/v1/users/{user_id}/daily/challenge/complete", response_model=ChallengeCompletionResponse)
@limiter.limit("30/minute")
async def complete_daily_challenge(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """Complete today's challenge; XP is awarded once per day (Rate limit: 30/minute)"""
    result = await services.journal_service.complete_challenge(user_id)
    return ChallengeCompletionResponse(
        outcome=result.outcome,
        xp_awarded=result.xp_awarded,
        xp=result.progress.xp,
        level=result.progress.level,
        leveled_up=result.leveled_up
    )


# ==========================================
# Reports
# ==========================================

@router.post("/api/v1/users/{user_id}/reports", response_model=ReportSnapshot, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def create_report(
    request: Request,
    user_id: str,
    body: ReportRequest,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """Generate a new report snapshot (Rate limit: 10/minute, narratives are expensive)"""
    return await services.report_aggregator.generate(user_id, window_days=body.window_days)


@router.get("/api/v1/users/{user_id}/reports", response_model=List[ReportSnapshot])
@limiter.limit("30/minute")
async def list_reports(
    request: Request,
    user_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """All report snapshots, newest first (Rate limit: 30/minute)"""
    return await services.report_aggregator.list_reports(user_id)


@router.get("/api/v1/users/{user_id}/reports/{report_id}", response_model=ReportSnapshot)
@limiter.limit("30/minute")
async def get_report(
    request: Request,
    user_id: str,
    report_id: str,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """One report snapshot (Rate limit: 30/minute)"""
    return await services.report_aggregator.get_report(user_id, report_id)


# ==========================================
# Community
# ==========================================

@router.get("/api/v1/community/posts", response_model=List[PostResponse])
@limiter.limit("60/minute")
async def list_posts(
    request: Request,
    limit: int = Query(default=50, ge=1, le=200),
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """Community feed, newest first (Rate limit: 60/minute)"""
    posts = await services.community_tracker.list_posts(limit)
    return [_post_response(post) for post in posts]


@router.post("/api/v1/community/posts/{post_id}/like", response_model=LikeResponse)
@limiter.limit("60/minute")
async def like_post(
    request: Request,
    post_id: str,
    user_id: str = Query(..., min_length=1, description="User giving the like"),
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """Like a post; liking twice counts once (Rate limit: 60/minute)"""
    outcome = await services.community_tracker.like(post_id, user_id)
    post = await services.community_tracker.get_post(post_id)
    return LikeResponse(post_id=post_id, outcome=outcome, like_count=post.like_count)


@router.delete("/api/v1/community/posts/{post_id}/like", response_model=LikeResponse)
@limiter.limit("60/minute")
async def unlike_post(
    request: Request,
    post_id: str,
    user_id: str = Query(..., min_length=1, description="User removing the like"),
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """Remove a like (Rate limit: 60/minute)"""
    outcome = await services.community_tracker.unlike(post_id, user_id)
    post = await services.community_tracker.get_post(post_id)
    return LikeResponse(post_id=post_id, outcome=outcome, like_count=post.like_count)


@router.delete("/api/v1/community/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("20/minute")
async def delete_post(
    request: Request,
    post_id: str,
    api_key: str = Depends(verify_api_key),
    admin_id: str = Depends(require_admin),
    services: ServiceContainer = Depends(container)
):
    """Remove a post (admins only, Rate limit: 20/minute)"""
    await services.community_tracker.delete(post_id)
    logger.info(f"Post {post_id} removed by admin {admin_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/api/v1/leaderboard", response_model=List[LeaderboardRow])
@limiter.limit("60/minute")
async def leaderboard(
    request: Request,
    limit: int = Query(default=10, ge=1, le=100),
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """Top users by XP (Rate limit: 60/minute)"""
    return await get_leaderboard(services.store, limit)


# ==========================================
# Mentor chat
# ==========================================

@router.post("/api/v1/users/{user_id}/chat", response_model=ChatResponse)
@limiter.limit("10/minute")
async def chat(
    request: Request,
    user_id: str,
    body: ChatRequest,
    api_key: str = Depends(verify_api_key),
    services: ServiceContainer = Depends(container)
):
    """Mentor chat (Rate limit: 10/minute, AI calls are expensive)"""
    reply = await services.coach_service.reply(user_id, body.message, body.message_history)
    return ChatResponse(response=reply, timestamp=now_utc(), user_id=user_id)


# ==========================================
# Health
# ==========================================

@router.get("/api/health", response_model=HealthCheckResponse)
async def health_check(services: ServiceContainer = Depends(container)):
    """Health check endpoint (no auth required)"""
    try:
        await services.store.get_progress("__health_check__")
        store_status = "connected"
    except StoreUnavailableError as e:
        logger.error(f"Store health check failed: {e}")
        store_status = "unavailable"

    return HealthCheckResponse(
        status="healthy" if store_status == "connected" else "degraded",
        store=store_status,
        timestamp=now_utc()
    )
