"""Achievement catalogue, activity metrics and awarding."""

import logging
from datetime import date, datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from thinkable.models.achievement import Achievement, UserAchievement
from thinkable.models.activity import StudySession, ToolUsage
from thinkable.models.content import ContentInteraction
from thinkable.models.quiz import QuizAttempt

logger = logging.getLogger(__name__)

METRICS = (
    'LESSONS_COMPLETED',
    'DAYS_STREAK',
    'QUIZZES_COMPLETED',
    'QUIZ_SCORE',
    'TOTAL_STUDY_TIME',
    'TOOLS_USED_COUNT',
)

# name, description, icon, category, points, requirement type, requirement value, rarity
DEFAULT_ACHIEVEMENTS = (
    ('First Steps', 'Complete your first lesson!', '🌟', 'LEARNING', 10, 'LESSONS_COMPLETED', 1, 'COMMON'),
    ('Getting Started', 'Complete 5 lessons', '⭐', 'LEARNING', 25, 'LESSONS_COMPLETED', 5, 'COMMON'),
    ('Learning Hero', 'Complete 10 lessons', '🏆', 'LEARNING', 50, 'LESSONS_COMPLETED', 10, 'RARE'),
    ('Knowledge Master', 'Complete 25 lessons', '👑', 'LEARNING', 100, 'LESSONS_COMPLETED', 25, 'EPIC'),
    ('Super Learner', 'Complete 50 lessons', '💎', 'LEARNING', 200, 'LESSONS_COMPLETED', 50, 'LEGENDARY'),
    ('Day One', 'Study for 1 day', '📚', 'STREAK', 5, 'DAYS_STREAK', 1, 'COMMON'),
    ("Three's a Charm", 'Study for 3 days in a row', '🔥', 'STREAK', 15, 'DAYS_STREAK', 3, 'COMMON'),
    ('Week Warrior', 'Study for 7 days in a row', '⚡', 'STREAK', 35, 'DAYS_STREAK', 7, 'RARE'),
    ('Unstoppable', 'Study for 14 days in a row', '💪', 'STREAK', 75, 'DAYS_STREAK', 14, 'EPIC'),
    ('Legend', 'Study for 30 days in a row', '👑', 'STREAK', 150, 'DAYS_STREAK', 30, 'LEGENDARY'),
    ('Quiz Starter', 'Take your first quiz', '🎯', 'MILESTONE', 10, 'QUIZZES_COMPLETED', 1, 'COMMON'),
    ('Smart Cookie', 'Get 80% or higher on a quiz', '🍪', 'MILESTONE', 20, 'QUIZ_SCORE', 80, 'COMMON'),
    ('Brilliant Mind', 'Get 90% or higher on a quiz', '🧠', 'MILESTONE', 30, 'QUIZ_SCORE', 90, 'RARE'),
    ('Perfect Score', 'Get 100% on a quiz', '🌟', 'MILESTONE', 50, 'QUIZ_SCORE', 100, 'EPIC'),
    ('Quick Learner', 'Study for 30 minutes total', '⏰', 'MILESTONE', 10, 'TOTAL_STUDY_TIME', 30, 'COMMON'),
    ('Dedicated Student', 'Study for 2 hours total', '📖', 'MILESTONE', 25, 'TOTAL_STUDY_TIME', 120, 'COMMON'),
    ('Study Champion', 'Study for 5 hours total', '🎓', 'MILESTONE', 50, 'TOTAL_STUDY_TIME', 300, 'RARE'),
    ('Tool Explorer', 'Use 3 different accessibility tools', '🔧', 'ACCESSIBILITY', 15, 'TOOLS_USED_COUNT', 3, 'COMMON'),
    ('Accessibility Hero', 'Use 5 different accessibility tools', '🦸', 'ACCESSIBILITY', 30, 'TOOLS_USED_COUNT', 5, 'RARE'),
)


def seed_default_achievements(db: Session) -> int:
    if db.query(Achievement).first() is not None:
        return 0

    for name, description, icon, category, points, requirement_type, requirement_value, rarity in DEFAULT_ACHIEVEMENTS:
        db.add(Achievement(
            name=name,
            description=description,
            icon=icon,
            category=category,
            points=points,
            requirement_type=requirement_type,
            requirement_value=requirement_value,
            rarity=rarity,
        ))
    db.commit()
    logger.info('Seeded %d default achievements', len(DEFAULT_ACHIEVEMENTS))
    return len(DEFAULT_ACHIEVEMENTS)


def calculate_streak(active_days: set[date], today: date) -> int:
    """Consecutive active days ending today, or yesterday when today has no activity yet."""
    cursor = today if today in active_days else today - timedelta(days=1)
    streak = 0
    while cursor in active_days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


def _active_days(db: Session, user_id: int) -> set[date]:
    timestamps: list[datetime] = []
    timestamps += [row[0] for row in db.query(StudySession.created_at).filter(StudySession.user_id == user_id)]
    timestamps += [
        row[0] for row in db.query(ContentInteraction.created_at).filter(ContentInteraction.student_id == user_id)
    ]
    timestamps += [row[0] for row in db.query(QuizAttempt.submitted_at).filter(QuizAttempt.student_id == user_id)]
    return {timestamp.date() for timestamp in timestamps if timestamp is not None}


def get_user_metrics(db: Session, user_id: int, today: date | None = None) -> dict[str, int]:
    today = today or datetime.utcnow().date()

    lessons_completed = db.query(func.count(ContentInteraction.id)).filter(
        ContentInteraction.student_id == user_id,
        ContentInteraction.interaction_type == 'completed',
    ).scalar()
    quizzes_completed = db.query(func.count(QuizAttempt.id)).filter(QuizAttempt.student_id == user_id).scalar()
    best_quiz_score = db.query(func.max(QuizAttempt.score)).filter(QuizAttempt.student_id == user_id).scalar()
    total_study_time = db.query(func.sum(StudySession.duration_minutes)).filter(
        StudySession.user_id == user_id,
        StudySession.mode == 'study',
        StudySession.completed.is_(True),
    ).scalar()
    tools_used = db.query(func.count(func.distinct(ToolUsage.tool_name))).filter(ToolUsage.user_id == user_id).scalar()

    return {
        'LESSONS_COMPLETED': lessons_completed or 0,
        'DAYS_STREAK': calculate_streak(_active_days(db, user_id), today),
        'QUIZZES_COMPLETED': quizzes_completed or 0,
        'QUIZ_SCORE': best_quiz_score or 0,
        'TOTAL_STUDY_TIME': total_study_time or 0,
        'TOOLS_USED_COUNT': tools_used or 0,
    }


def _earned_ids(db: Session, user_id: int) -> set[int]:
    rows = db.query(UserAchievement.achievement_id).filter(UserAchievement.user_id == user_id).all()
    return {row[0] for row in rows}


def check_and_award(db: Session, user_id: int, metrics: dict[str, int]) -> list[UserAchievement]:
    """Award every active achievement whose requirement ``metrics`` now meets.

    Already earned achievements are skipped. The caller commits.
    """
    earned_ids = _earned_ids(db, user_id)
    achievements = (
        db.query(Achievement)
        .filter(Achievement.is_active.is_(True))
        .order_by(Achievement.created_at.asc(), Achievement.id.asc())
        .all()
    )

    newly_earned = []
    for achievement in achievements:
        if achievement.id in earned_ids:
            continue
        value = metrics.get(achievement.requirement_type, 0)
        if value < (achievement.requirement_value or 0):
            continue

        user_achievement = UserAchievement(
            user_id=user_id,
            achievement=achievement,
            progress_value=value,
            is_new=True,
        )
        db.add(user_achievement)
        newly_earned.append(user_achievement)
        logger.info("Awarded achievement '%s' to user %s", achievement.name, user_id)

    db.flush()
    return newly_earned


def achievement_progress(db: Session, user_id: int, metrics: dict[str, int]) -> list[dict]:
    earned = {
        user_achievement.achievement_id: user_achievement
        for user_achievement in db.query(UserAchievement).filter(UserAchievement.user_id == user_id)
    }
    achievements = (
        db.query(Achievement)
        .filter(Achievement.is_active.is_(True), Achievement.is_hidden.is_(False))
        .order_by(Achievement.points.asc(), Achievement.id.asc())
        .all()
    )

    progress = []
    for achievement in achievements:
        entry = {'achievement': achievement, 'is_earned': achievement.id in earned}
        if achievement.id in earned:
            entry['earned_at'] = earned[achievement.id].earned_at
            entry['progress'] = 100
        else:
            value = metrics.get(achievement.requirement_type, 0)
            required = achievement.requirement_value or 0
            entry['progress'] = min(100, value * 100 // max(1, required))
            entry['current_value'] = value
            entry['required_value'] = required
        progress.append(entry)
    return progress


def achievement_stats(db: Session, user_id: int, now: datetime | None = None) -> dict:
    now = now or datetime.utcnow()
    total_earned = db.query(func.count(UserAchievement.id)).filter(UserAchievement.user_id == user_id).scalar() or 0
    total_points = (
        db.query(func.sum(Achievement.points))
        .join(UserAchievement, UserAchievement.achievement_id == Achievement.id)
        .filter(UserAchievement.user_id == user_id)
        .scalar()
    ) or 0
    total_available = db.query(func.count(Achievement.id)).filter(Achievement.is_active.is_(True)).scalar() or 0
    recent = (
        db.query(UserAchievement)
        .filter(UserAchievement.user_id == user_id, UserAchievement.earned_at >= now - timedelta(days=7))
        .order_by(UserAchievement.earned_at.desc())
        .all()
    )

    return {
        'total_earned': total_earned,
        'total_points': total_points,
        'total_available': total_available,
        'completion_percentage': total_earned * 100 // total_available if total_available else 0,
        'recent_achievements': recent,
    }


def refresh_achievements(db: Session, user_id: int) -> list[UserAchievement]:
    return check_and_award(db, user_id, get_user_metrics(db, user_id))
