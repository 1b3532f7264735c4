"""Catalog seeder - default achievement and daily task definitions."""

from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.models.achievement import (
    AchievementCategory,
    AchievementDefinition,
    AchievementRarity,
    RequirementKind,
)
from questlearn.models.daily_task import DailyTaskDefinition, TaskDifficulty

# (threshold, rarity, exp_reward, gold_reward, icon)
Tier = tuple[int, AchievementRarity, int, int, str]


def generate_tiered_achievements(
    code_prefix: str,
    name_templates: list[str],
    description_template: str,
    category: AchievementCategory,
    kind: RequirementKind,
    tiers: list[Tier],
    subject: str | None = None,
    is_hidden: bool = False,
) -> list[dict[str, Any]]:
    """One achievement per tier, coded ``{prefix}_{threshold}``."""
    achievements = []
    for (threshold, rarity, exp, gold, icon), name in zip(tiers, name_templates):
        achievements.append({
            "code": f"{code_prefix}_{threshold}",
            "name": name,
            "description": description_template.format(value=threshold, subject=subject),
            "icon": icon,
            "category": category.value,
            "rarity": rarity.value,
            "requirement_kind": kind.value,
            "requirement_value": threshold,
            "requirement_subject": subject,
            "exp_reward": exp,
            "gold_reward": gold,
            "is_hidden": is_hidden,
        })
    return achievements


def generate_default_achievements() -> list[dict[str, Any]]:
    R = AchievementRarity
    achievements = [{
        "code": "FIRST_QUESTION",
        "name": "First Steps",
        "description": "Answer your first question",
        "icon": "🎯",
        "category": AchievementCategory.LEARNING.value,
        "rarity": R.COMMON.value,
        "requirement_kind": RequirementKind.QUESTIONS_ANSWERED.value,
        "requirement_value": 1,
        "requirement_subject": None,
        "exp_reward": 10,
        "gold_reward": 5,
        "is_hidden": False,
    }]

    # =========================================================================
    # LEARNING
    # =========================================================================

    achievements.extend(generate_tiered_achievements(
        code_prefix="QUESTION",
        name_templates=["Curious Mind", "Diligent Learner", "Question Hunter", "Knowledge Seeker"],
        description_template="Answer {value} questions in total",
        category=AchievementCategory.LEARNING,
        kind=RequirementKind.QUESTIONS_ANSWERED,
        tiers=[
            (10, R.COMMON, 30, 15, "📖"),
            (50, R.RARE, 100, 50, "📚"),
            (100, R.EPIC, 200, 100, "🎓"),
            (500, R.LEGENDARY, 500, 250, "👑"),
        ],
    ))
    achievements.extend(generate_tiered_achievements(
        code_prefix="CORRECT",
        name_templates=["Sharp Shooter", "Problem Solver", "Answer Ace"],
        description_template="Answer {value} questions correctly",
        category=AchievementCategory.LEARNING,
        kind=RequirementKind.CORRECT_ANSWERS,
        tiers=[
            (10, R.COMMON, 30, 15, "✅"),
            (50, R.RARE, 100, 50, "🌟"),
            (100, R.EPIC, 200, 100, "💯"),
        ],
    ))
    achievements.extend(generate_tiered_achievements(
        code_prefix="STREAK",
        name_templates=["On a Roll", "Hot Streak", "Unstoppable"],
        description_template="Answer {value} questions correctly in a row",
        category=AchievementCategory.LEARNING,
        kind=RequirementKind.CORRECT_STREAK,
        tiers=[
            (5, R.COMMON, 25, 10, "🔥"),
            (10, R.RARE, 75, 30, "⚡"),
            (20, R.EPIC, 150, 75, "💥"),
        ],
    ))
    achievements.extend(generate_tiered_achievements(
        code_prefix="STREAK",
        name_templates=["Flawless"],
        description_template="Answer {value} questions correctly in a row",
        category=AchievementCategory.SPECIAL,
        kind=RequirementKind.CORRECT_STREAK,
        tiers=[(50, R.LEGENDARY, 500, 200, "🐉")],
        is_hidden=True,
    ))
    for subject in ("chinese", "math", "english"):
        achievements.extend(generate_tiered_achievements(
            code_prefix=f"MASTERY_{subject.upper()}",
            name_templates=[f"{subject.title()} Adept", f"{subject.title()} Master"],
            description_template="Raise your {subject} stat to {value}",
            category=AchievementCategory.LEARNING,
            kind=RequirementKind.SUBJECT_MASTERY,
            tiers=[
                (70, R.RARE, 80, 40, "📐"),
                (100, R.EPIC, 200, 100, "🏅"),
            ],
            subject=subject,
        ))

    # =========================================================================
    # ADVENTURE
    # =========================================================================

    achievements.extend(generate_tiered_achievements(
        code_prefix="LEVEL",
        name_templates=["Rising Adventurer", "Seasoned Adventurer", "Legendary Hero"],
        description_template="Reach level {value}",
        category=AchievementCategory.ADVENTURE,
        kind=RequirementKind.LEVEL_REACHED,
        tiers=[
            (5, R.COMMON, 50, 25, "⬆️"),
            (10, R.RARE, 100, 50, "🗡️"),
            (20, R.EPIC, 200, 100, "🛡️"),
        ],
    ))
    achievements.extend(generate_tiered_achievements(
        code_prefix="EXP",
        name_templates=["Experienced", "Veteran"],
        description_template="Earn {value} exp from answering questions",
        category=AchievementCategory.ADVENTURE,
        kind=RequirementKind.EXP_EARNED,
        tiers=[
            (500, R.COMMON, 30, 15, "✨"),
            (5000, R.EPIC, 150, 75, "🌠"),
        ],
    ))
    achievements.extend(generate_tiered_achievements(
        code_prefix="GOLD",
        name_templates=["Piggy Bank", "Small Fortune", "Tycoon"],
        description_template="Earn {value} gold from answering questions",
        category=AchievementCategory.ADVENTURE,
        kind=RequirementKind.GOLD_EARNED,
        tiers=[
            (100, R.COMMON, 20, 10, "💰"),
            (500, R.RARE, 50, 25, "💎"),
            (1000, R.EPIC, 100, 50, "🏆"),
        ],
    ))
    achievements.extend(generate_tiered_achievements(
        code_prefix="SHOPPER",
        name_templates=["First Purchase", "Shopaholic"],
        description_template="Own {value} items from the shop",
        category=AchievementCategory.ADVENTURE,
        kind=RequirementKind.ITEMS_PURCHASED,
        tiers=[
            (1, R.COMMON, 15, 0, "🛒"),
            (10, R.RARE, 50, 20, "🛍️"),
        ],
    ))

    # =========================================================================
    # SPECIAL
    # =========================================================================

    achievements.extend(generate_tiered_achievements(
        code_prefix="DAILY",
        name_templates=["Star of the Day", "Study Machine"],
        description_template="Answer {value} questions in a single day",
        category=AchievementCategory.SPECIAL,
        kind=RequirementKind.DAILY_QUESTIONS,
        tiers=[
            (10, R.RARE, 50, 25, "⭐"),
            (20, R.EPIC, 100, 50, "🌟"),
        ],
    ))

    for order, achievement in enumerate(achievements):
        achievement["sort_order"] = order
    return achievements


def generate_default_daily_tasks() -> list[dict[str, Any]]:
    """The standard rotation: three easy, three medium, two hard."""
    rows = [
        ("DAILY_Q3", "First Challenge", "Answer 3 questions today", "📝",
         RequirementKind.QUESTIONS_ANSWERED, 3, 15, 5, TaskDifficulty.EASY),
        ("DAILY_CORRECT_3", "Warming Up", "Answer 3 questions correctly today", "✅",
         RequirementKind.CORRECT_ANSWERS, 3, 20, 8, TaskDifficulty.EASY),
        ("DAILY_Q5", "Hard Worker", "Answer 5 questions today", "📚",
         RequirementKind.QUESTIONS_ANSWERED, 5, 25, 10, TaskDifficulty.MEDIUM),
        ("DAILY_CORRECT_5", "Quiz Pro", "Answer 5 questions correctly today", "🌟",
         RequirementKind.CORRECT_ANSWERS, 5, 30, 12, TaskDifficulty.MEDIUM),
        ("DAILY_STREAK_3", "Streak Starter", "Get 3 correct answers in a row today", "🔥",
         RequirementKind.CORRECT_STREAK, 3, 25, 10, TaskDifficulty.MEDIUM),
        ("DAILY_Q10", "Study Expert", "Answer 10 questions today", "🎯",
         RequirementKind.QUESTIONS_ANSWERED, 10, 50, 20, TaskDifficulty.HARD),
        ("DAILY_CORRECT_10", "Top of the Class", "Answer 10 questions correctly today", "💯",
         RequirementKind.CORRECT_ANSWERS, 10, 60, 25, TaskDifficulty.HARD),
        ("DAILY_STREAK_5", "Full Power", "Get 5 correct answers in a row today", "💥",
         RequirementKind.CORRECT_STREAK, 5, 50, 20, TaskDifficulty.HARD),
    ]
    return [
        {
            "code": code,
            "name": name,
            "description": description,
            "icon": icon,
            "requirement_kind": kind.value,
            "target_value": target,
            "target_subject": None,
            "exp_reward": exp,
            "gold_reward": gold,
            "difficulty": difficulty.value,
            "sort_order": order,
        }
        for order, (code, name, description, icon, kind, target, exp, gold, difficulty)
        in enumerate(rows, 1)
    ]


async def seed_catalog(db: AsyncSession, force: bool = False) -> dict[str, int]:
    """Insert the default catalogs. Tables that already hold rows are left alone unless forced.

    Returns how many definitions were inserted per catalog.
    """
    inserted = {}
    for model, generate in (
        (AchievementDefinition, generate_default_achievements),
        (DailyTaskDefinition, generate_default_daily_tasks),
    ):
        existing = (await db.execute(select(func.count(model.id)))).scalar() or 0
        if existing and not force:
            inserted[model.__tablename__] = 0
            continue
        if existing:
            await db.execute(delete(model))

        rows = generate()
        db.add_all(model(**row) for row in rows)
        await db.flush()
        inserted[model.__tablename__] = len(rows)
    return inserted
