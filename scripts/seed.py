#!/usr/bin/env python3
"""Seed Prompt Bank with demo users, categories and starter prompts."""

from __future__ import annotations

import asyncio

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from promptbank.common.crypto import PASSWORD_POLICY_MESSAGE, hash_password, is_strong_password
from promptbank.common.logging import configure_logging
from promptbank.common.text import tags_to_csv
from promptbank.config import get_settings
from promptbank.db.session import Database
from promptbank.models import (
    Category,
    Prompt,
    PromptStatus,
    PromptTag,
    PromptVersion,
    PromptVisibility,
    SavedPrompt,
    Tag,
    User,
    UserRole,
)

logger = structlog.stdlib.get_logger()

DEMO_USERS = [
    ("admin@promptbank.local", "Admin User", UserRole.ADMIN, "Admin@12345!!"),
    ("editor@promptbank.local", "Editor User", UserRole.EDITOR, "Editor@12345!!"),
    ("viewer@promptbank.local", "Viewer User", UserRole.VIEWER, "Viewer@12345!!"),
]

CATEGORIES = [
    ("Marketing", "Campaign, messaging and content prompts."),
    ("Engineering", "Code review, debugging and architecture prompts."),
    ("Customer Success", "Support replies and onboarding prompts."),
]

STARTER_PROMPTS = [
    {
        "title": "Launch announcement email",
        "description": "Drafts a product launch email for existing customers.",
        "content": (
            "Write a concise launch announcement email for {product}. "
            "Audience: existing customers. Highlight three benefits and end with a clear call to action."
        ),
        "category": "Marketing",
        "owner": "admin@promptbank.local",
        "visibility": PromptVisibility.TEAM,
        "status": PromptStatus.APPROVED,
        "tags": ["email", "launch"],
    },
    {
        "title": "Pull request reviewer",
        "description": "Reviews a diff for bugs, readability and missing tests.",
        "content": (
            "You are a senior engineer reviewing a pull request. For the diff below, list "
            "correctness issues first, then readability concerns, then missing tests.\n\n{diff}"
        ),
        "category": "Engineering",
        "owner": "editor@promptbank.local",
        "visibility": PromptVisibility.TEAM,
        "status": PromptStatus.DRAFT,
        "tags": ["code-review", "engineering"],
    },
]


async def seed_users(session: AsyncSession, iterations: int) -> dict[str, User]:
    users: dict[str, User] = {}
    for email, name, role, password in DEMO_USERS:
        if not is_strong_password(password):
            raise ValueError(f"Seed password for {email} is weak. {PASSWORD_POLICY_MESSAGE}")

        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            user = User(email=email)
            session.add(user)
        user.name = name
        user.role = role
        user.password_hash = hash_password(password, iterations)
        user.failed_logins = 0
        user.locked_until = None
        users[email] = user
    await session.flush()
    return users


async def seed_categories(session: AsyncSession) -> dict[str, Category]:
    categories: dict[str, Category] = {}
    for name, description in CATEGORIES:
        result = await session.execute(select(Category).where(Category.name == name))
        category = result.scalar_one_or_none()
        if category is None:
            category = Category(name=name)
            session.add(category)
        category.description = description
        categories[name] = category
    await session.flush()
    return categories


async def seed_prompts(
    session: AsyncSession, users: dict[str, User], categories: dict[str, Category]
) -> int:
    created = 0
    for starter in STARTER_PROMPTS:
        owner = users[starter["owner"]]
        existing = await session.execute(
            select(Prompt.id).where(Prompt.title == starter["title"], Prompt.owner_id == owner.id)
        )
        if existing.scalar_one_or_none() is not None:
            continue

        tags = []
        for name in starter["tags"]:
            result = await session.execute(select(Tag).where(Tag.name == name))
            tag = result.scalar_one_or_none() or Tag(name=name)
            tags.append(PromptTag(tag=tag))

        prompt = Prompt(
            title=starter["title"],
            description=starter["description"],
            content=starter["content"],
            category_id=categories[starter["category"]].id,
            owner_id=owner.id,
            visibility=starter["visibility"],
            status=starter["status"],
            tags=tags,
            collaborators=[],
        )
        session.add(prompt)
        await session.flush()

        session.add(
            PromptVersion(
                prompt_id=prompt.id,
                version=1,
                title=prompt.title,
                description=prompt.description,
                content=prompt.content,
                category_id=prompt.category_id,
                tags_csv=tags_to_csv(sorted(starter["tags"])),
                visibility=prompt.visibility,
                status=prompt.status,
                changed_by_id=owner.id,
            )
        )
        session.add(SavedPrompt(prompt_id=prompt.id, user_id=owner.id))
        created += 1
    await session.flush()
    return created


async def main() -> None:
    settings = get_settings()
    configure_logging(settings.logging.level, settings.logging.format)

    database = Database(settings.database)
    await database.create_all()
    try:
        async with database.session() as session:
            users = await seed_users(session, settings.auth.password_hash_iterations)
            categories = await seed_categories(session)
            created = await seed_prompts(session, users, categories)
    finally:
        await database.dispose()

    await logger.ainfo(
        "seed.completed",
        users=len(users),
        categories=len(categories),
        prompts_created=created,
    )

    print("\n" + "=" * 60)
    print("  PROMPT BANK - Demo accounts")
    print("=" * 60)
    for email, _, role, password in DEMO_USERS:
        print(f"  {role.value:<7} {email:<28} {password}")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
