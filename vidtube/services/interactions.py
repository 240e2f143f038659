from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, get_args

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vidtube import crud, models
from vidtube.exceptions import BadRequestError, ForbiddenError, NotFoundError, parse_id
from vidtube.schemas import ReactionAction
from vidtube.services.users import get_channel
from vidtube.services.videos import get_video_or_404

logger = logging.getLogger(__name__)

REACTION_ACTIONS = set(get_args(ReactionAction))

_TARGET_KIND = {
    "like": models.LIKE,
    "unlike": models.LIKE,
    "dislike": models.DISLIKE,
    "undislike": models.DISLIKE,
}

_REDUNDANT_MESSAGES = {
    "like": "Video already liked",
    "unlike": "Video not liked",
    "dislike": "Video already disliked",
    "undislike": "Video not disliked",
}

_DONE_MESSAGES = {
    "like": "Video liked successfully",
    "unlike": "Video unliked successfully",
    "dislike": "Video disliked successfully",
    "undislike": "Video undisliked successfully",
}


@dataclass
class ReactionResult:
    changed: bool
    message: str
    is_liked: bool
    is_disliked: bool


def set_reaction(
    db: Session,
    user: models.User,
    video_id: str,
    action: str | None,
    allowed: tuple[str, ...] = ("like", "unlike", "dislike", "undislike"),
) -> ReactionResult:
    parsed_id = parse_id(video_id, "video")
    if action not in REACTION_ACTIONS or action not in allowed:
        choices = '" or "'.join(allowed)
        raise BadRequestError(f'Invalid action. Must be "{choices}"')

    try:
        return _apply_reaction(db, user, parsed_id, action)
    except IntegrityError:
        # Another request reacted first; decide again against its row.
        db.rollback()
        return _apply_reaction(db, user, parsed_id, action)


def _apply_reaction(db: Session, user: models.User, video_id: uuid.UUID, action: str) -> ReactionResult:
    video = get_video_or_404(db, video_id)
    reaction = crud.get_reaction(db, user.id, video.id)
    current = reaction.kind if reaction else None
    kind = _TARGET_KIND[action]
    adding = action in ("like", "dislike")

    if (adding and current == kind) or (not adding and current != kind):
        return ReactionResult(
            changed=False,
            message=_REDUNDANT_MESSAGES[action],
            is_liked=current == models.LIKE,
            is_disliked=current == models.DISLIKE,
        )

    if adding:
        if reaction is None:
            db.add(models.Reaction(user_id=user.id, video_id=video.id, kind=kind))
        else:
            # Switching sides replaces the opposite reaction in place.
            reaction.kind = kind
        result_kind: str | None = kind
    else:
        db.delete(reaction)
        result_kind = None
    db.commit()

    return ReactionResult(
        changed=True,
        message=_DONE_MESSAGES[action],
        is_liked=result_kind == models.LIKE,
        is_disliked=result_kind == models.DISLIKE,
    )


def toggle_subscription(db: Session, subscriber: models.User, channel_id: str) -> bool:
    channel = get_channel(db, channel_id)
    if str(channel.id) == str(subscriber.id):
        raise BadRequestError("Cannot subscribe to your own channel")

    edge = crud.get_subscription(db, subscriber.id, channel.id)
    if edge is not None:
        db.delete(edge)
        subscribed = False
    else:
        db.add(models.Subscription(subscriber_id=subscriber.id, channel_id=channel.id))
        subscribed = True
    try:
        db.commit()
    except IntegrityError:
        if not subscribed:
            raise
        # A concurrent request created the same edge.
        db.rollback()
    db.expire(subscriber)
    logger.info(
        "Subscription toggled",
        extra={"subscriber_id": str(subscriber.id), "channel_id": str(channel.id), "subscribed": subscribed},
    )
    return subscribed


def _clean_content(content: Any) -> str:
    if not isinstance(content, str) or not content.strip():
        raise BadRequestError("Comment content is required")
    return content.strip()


def add_comment(db: Session, user: models.User, video_id: str, content: Any) -> models.Comment:
    parsed_id = parse_id(video_id, "video")
    text = _clean_content(content)
    video = get_video_or_404(db, parsed_id)

    comment = models.Comment(video_id=video.id, owner_id=user.id, content=text)
    video.comments.append(comment)
    db.commit()
    return crud.get_comment(db, comment.id)


def _owned_comment(db: Session, user: models.User, comment_id: str, verb: str) -> models.Comment:
    comment = crud.get_comment(db, parse_id(comment_id, "comment"))
    if comment is None:
        raise NotFoundError("Comment not found")
    if str(comment.owner_id) != str(user.id):
        raise ForbiddenError(f"You do not have permission to {verb} this comment")
    return comment


def update_comment(db: Session, user: models.User, comment_id: str, content: Any) -> models.Comment:
    parse_id(comment_id, "comment")
    text = _clean_content(content)
    comment = _owned_comment(db, user, comment_id, "update")
    comment.content = text
    db.commit()
    return crud.get_comment(db, comment.id)


def delete_comment(db: Session, user: models.User, comment_id: str) -> uuid.UUID:
    comment = _owned_comment(db, user, comment_id, "delete")
    comment_pk = comment.id
    db.delete(comment)
    db.commit()
    logger.info("Comment deleted", extra={"comment_id": str(comment_pk)})
    return comment_pk


def list_comments(db: Session, video_id: str) -> list[models.Comment]:
    return crud.list_comments(db, parse_id(video_id, "video"))
