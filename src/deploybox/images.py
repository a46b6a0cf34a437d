"""Image resolution: map an image id or repository/tag to a local image."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from . import daemon
from .errors import ImageNotFoundError
from .logging import get_logger

if TYPE_CHECKING:
    import docker

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedImage:
    """An image picked for provisioning."""

    id: str
    repo_tags: tuple[str, ...] = ()
    created: int = 0
    matched_tag: str | None = None  # repo:tag label that matched, None for id matches

    @property
    def short_id(self) -> str:
        return self.id.split(":", 1)[-1][:12]

    @property
    def display_name(self) -> str:
        return self.matched_tag or self.short_id

    @classmethod
    def from_summary(cls, summary: dict[str, Any], matched_tag: str | None = None) -> ResolvedImage:
        return cls(
            id=summary["Id"],
            repo_tags=tuple(summary.get("RepoTags") or ()),
            created=int(summary.get("Created") or 0),
            matched_tag=matched_tag,
        )


def split_repo_tag(label: str) -> tuple[str, str]:
    """Split a repo:tag label on the last colon (registry ports keep theirs)."""
    repository, sep, tag = label.rpartition(":")
    if not sep or "/" in tag:
        return label, ""
    return repository, tag


def match_image_id(images: list[dict[str, Any]], image_id: str) -> ResolvedImage | None:
    """Return the first image whose id contains ``image_id``."""
    for summary in images:
        if image_id in summary["Id"]:
            return ResolvedImage.from_summary(summary)
    return None


def match_repo_tag(
    images: list[dict[str, Any]], repository: str, tag: str
) -> list[ResolvedImage]:
    """Return every (image, label) pair matching the repository and tag substrings."""
    matches = []
    for summary in images:
        for label in summary.get("RepoTags") or ():
            repo_part, tag_part = split_repo_tag(label)
            if repository in repo_part and tag in tag_part:
                matches.append(ResolvedImage.from_summary(summary, matched_tag=label))
    return matches


def pick_match(matches: list[ResolvedImage]) -> ResolvedImage:
    """Pick one candidate: newest image, then greatest label, then greatest id."""
    return max(matches, key=lambda m: (m.created, m.matched_tag or "", m.id))


def resolve_image(
    client: docker.DockerClient,
    *,
    image_id: str | None = None,
    repository: str = "",
    tag: str = "",
) -> ResolvedImage:
    """Resolve the image to provision from.

    An explicit image id wins and short-circuits on the first id containing
    it. Otherwise every repo:tag label is tested with substring matching and
    the candidates are ranked by ``pick_match``.

    Raises:
        ImageNotFoundError: If nothing matches.
    """
    images = daemon.list_images(client)

    if image_id:
        resolved = match_image_id(images, image_id)
        if resolved is None:
            raise ImageNotFoundError(f"No image with id matching '{image_id}'", subject=image_id)
        logger.info("Resolved image id %s -> %s", image_id, resolved.short_id)
        return resolved

    matches = match_repo_tag(images, repository, tag)
    if not matches:
        wanted = f"{repository}:{tag}"
        raise ImageNotFoundError(f"No image matching '{wanted}' found on this host", subject=wanted)
    if len(matches) > 1:
        logger.debug("%d images match %s:%s", len(matches), repository, tag)

    resolved = pick_match(matches)
    logger.info("Resolved %s:%s -> %s (%s)", repository, tag, resolved.matched_tag, resolved.short_id)
    return resolved
