"""
Short-form feed detection from UI snapshots.

Decides whether the foreground app is currently showing its short-form
video feed (Reels, Shorts, ...) by scanning the snapshot for app-specific
keywords in view identifiers, class names, content descriptions and text.

Pure and stateless: classify() never raises and never mutates its input.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Optional, Tuple

import config
from screen.ui_snapshot import UiNode, UiSnapshot

logger = logging.getLogger(__name__)

# Match policies
MATCH_KEYWORDS = "keywords"
MATCH_ALWAYS = "always"


@dataclass(frozen=True)
class FeedProfile:
    """
    Detection rules for one monitored app.

    keywords are lowercase substrings, checked in order. With
    match_policy MATCH_ALWAYS the app is treated as a feed whenever it is
    in the foreground and keywords are ignored.
    """
    app_id: str
    name: str
    keywords: Tuple[str, ...] = ()
    match_policy: str = MATCH_KEYWORDS

    def __post_init__(self):
        object.__setattr__(self, "keywords", tuple(k.lower() for k in self.keywords if k))
        if self.match_policy not in (MATCH_KEYWORDS, MATCH_ALWAYS):
            raise ValueError(f"Unknown match policy: {self.match_policy}")


# Adding an app is a data change: add a profile here and its id to
# config.MONITORED_APPS
FEED_PROFILES: Dict[str, FeedProfile] = {
    config.APP_INSTAGRAM: FeedProfile(
        app_id=config.APP_INSTAGRAM,
        name="Instagram Reels",
        keywords=(
            "clips_viewer_clips_tab",
            "reel_viewer",
            "clipsviewerfragment",
            "clips_tab",
            "reels_tab",
            "reel_feed",
            "clips_",
            "reel_",
        ),
    ),
    config.APP_YOUTUBE: FeedProfile(
        app_id=config.APP_YOUTUBE,
        name="YouTube Shorts",
        keywords=(
            "shorts",
            "reel_",
            "shorty",
            "short_player",
            "shorts_player",
            "reel_player",
            "/shorts/",
            "reel_watch_fragment",
            "reel_recycler",
        ),
    ),
    # The whole app is a short-form feed; no structural check, so anything
    # in the foreground counts (known higher false-positive rate)
    config.APP_TIKTOK: FeedProfile(
        app_id=config.APP_TIKTOK,
        name="TikTok",
        match_policy=MATCH_ALWAYS,
    ),
}


@dataclass
class TraversalStats:
    """Counters describing one classify() call."""
    nodes_visited: int = 0
    nodes_skipped: int = 0  # not expanded: fan-out, depth or node budget
    errors: int = 0
    matched_keyword: Optional[str] = None


@dataclass
class FeedClassifier:
    """
    Keyword-based short-form feed classifier.

    Traversal is depth-first over the snapshot arena with an explicit stack,
    bounded by fan-out, depth and a total node budget.
    """
    monitored_apps: FrozenSet[str] = config.MONITORED_APPS
    profiles: Dict[str, FeedProfile] = field(default_factory=lambda: dict(FEED_PROFILES))
    max_fanout: int = config.MAX_CHILD_FANOUT
    max_depth: int = config.MAX_TRAVERSAL_DEPTH
    max_nodes: int = config.MAX_VISITED_NODES

    def is_monitored(self, app_id: Optional[str]) -> bool:
        return bool(app_id) and app_id in self.monitored_apps

    def classify(
        self,
        app_id: Optional[str],
        snapshot: Optional[UiSnapshot],
        stats: Optional[TraversalStats] = None,
    ) -> bool:
        """
        Check whether the snapshot shows a monitored short-form feed.

        Args:
            app_id: Foreground application identifier.
            snapshot: Current UI snapshot (may be None or empty).
            stats: Optional probe filled with traversal counters.

        Returns:
            True if inside a monitored feed. False for unmonitored apps
            (without looking at the snapshot) and on any failure.
        """
        if stats is None:
            stats = TraversalStats()

        if not self.is_monitored(app_id):
            return False

        profile = self.profiles.get(app_id)
        if profile is None:
            logger.debug(f"No feed profile for monitored app {app_id}")
            return False

        if profile.match_policy == MATCH_ALWAYS:
            return True

        try:
            return self._search(snapshot, profile.keywords, stats)
        except Exception as e:
            # Fail closed: not counting beats breaking the event stream
            logger.warning(f"Feed classification failed for {app_id}: {e}")
            stats.errors += 1
            return False

    def _search(
        self,
        snapshot: Optional[UiSnapshot],
        keywords: Tuple[str, ...],
        stats: TraversalStats,
    ) -> bool:
        """Depth-first keyword search. Returns True on the first hit."""
        if snapshot is None or len(snapshot) == 0 or not keywords:
            return False

        # (node index, depth); children pushed reversed so they pop in order
        stack = [(0, 0)]
        while stack:
            if stats.nodes_visited >= self.max_nodes:
                stats.nodes_skipped += len(stack)
                logger.debug(f"Node budget of {self.max_nodes} exhausted")
                return False

            index, depth = stack.pop()
            try:
                node = snapshot.node(index)
                children = tuple(node.children or ())
            except (AttributeError, IndexError, TypeError) as e:
                # Unreadable node: no match here, carry on with siblings
                logger.debug(f"Skipping unreadable node {index}: {e}")
                stats.errors += 1
                continue
            stats.nodes_visited += 1

            hit = self._match_node(node, index, keywords, stats)
            if hit is not None:
                stats.matched_keyword = hit
                return True

            if not children:
                continue
            if len(children) >= self.max_fanout or depth >= self.max_depth:
                stats.nodes_skipped += 1
                continue
            for child in reversed(children):
                stack.append((child, depth + 1))

        return False

    def _match_node(
        self,
        node: UiNode,
        index: int,
        keywords: Tuple[str, ...],
        stats: TraversalStats,
    ) -> Optional[str]:
        """
        Return the first keyword found in any of the node's fields.

        A field that cannot be read as text counts as an error and is
        skipped; the node's other fields are still scanned.
        """
        try:
            fields = node.searchable_fields()
        except (AttributeError, TypeError) as e:
            logger.debug(f"Node {index} has no readable fields: {e}")
            stats.errors += 1
            return None

        for value in fields:
            try:
                hit = _match_field(value, keywords)
            except (AttributeError, TypeError) as e:
                logger.debug(f"Skipping unreadable field {value!r} of node {index}: {e}")
                stats.errors += 1
                continue
            if hit is not None:
                return hit
        return None


def _match_field(value: str, keywords: Tuple[str, ...]) -> Optional[str]:
    """Return the first keyword contained in value (case-insensitive)."""
    if not value:
        return None
    lowered = value.lower()
    for keyword in keywords:
        if keyword in lowered:
            return keyword
    return None


_default_classifier = FeedClassifier()


def classify(
    app_id: Optional[str],
    snapshot: Optional[UiSnapshot],
    stats: Optional[TraversalStats] = None,
) -> bool:
    """Classify with the default monitored apps and profiles."""
    return _default_classifier.classify(app_id, snapshot, stats)
