"""robots.txt rule parsing and the allow/disallow matcher."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

LOGGER = logging.getLogger(__name__)

WILDCARD_AGENT = "*"

# A Disallow of "" or "/" is treated as "allow everything" by the matcher.
_ALLOW_ALL_DISALLOWS = frozenset({"", "/"})


@dataclass(slots=True)
class RobotsRules:
    """Per-user-agent rule sets as read from robots.txt.

    Agent keys are lowercased; paths are kept exactly as written.
    """

    disallow: dict[str, list[str]] = field(default_factory=dict)
    allow: dict[str, list[str]] = field(default_factory=dict)
    sitemap: dict[str, str] = field(default_factory=dict)
    crawl_delay: dict[str, float] = field(default_factory=dict)


def _split_directive(line: str) -> tuple[str, str] | None:
    line = line.split("#", maxsplit=1)[0].strip()
    if not line or ":" not in line:
        return None
    name, value = line.split(":", maxsplit=1)
    return name.strip().lower(), value.strip()


def parse_robots_txt(contents: str | bytes | None) -> RobotsRules:
    """Parse robots.txt text into `RobotsRules`.

    Consecutive `User-agent` lines open one shared group; rules that appear
    before any `User-agent` line are ignored. `Sitemap` lines attach to the
    current group, or to `*` when no group is open.
    """

    if contents is None:
        contents = ""
    if isinstance(contents, bytes):
        contents = contents.decode("utf-8", errors="replace")

    rules = RobotsRules()
    agents: list[str] = []
    collecting_agents = False

    for raw_line in contents.splitlines():
        directive = _split_directive(raw_line)
        if directive is None:
            continue
        name, value = directive

        if name == "user-agent":
            if not collecting_agents:
                agents = []
                collecting_agents = True
            if value:
                agents.append(value.lower())
            continue

        collecting_agents = False

        if name == "sitemap":
            if value:
                for agent in agents or [WILDCARD_AGENT]:
                    rules.sitemap[agent] = value
            continue

        if not agents:
            continue

        if name == "allow":
            for agent in agents:
                rules.allow.setdefault(agent, []).append(value)
        elif name == "disallow":
            for agent in agents:
                rules.disallow.setdefault(agent, []).append(value)
        elif name == "crawl-delay":
            try:
                delay = float(value)
            except ValueError:
                LOGGER.debug("Ignoring unparsable crawl-delay %r", value)
                continue
            if delay < 0:
                continue
            for agent in agents:
                rules.crawl_delay[agent] = delay

    return rules


def _longest_prefix(path: str, rules: list[str]) -> int:
    lowered = path.lower()
    longest = -1
    for rule in rules:
        if lowered.startswith(rule.lower()) and len(rule) > longest:
            longest = len(rule)
    return longest


class RobotsPolicy:
    """Answers allow/deny and crawl-delay questions for one site.

    Built once before the crawl begins and never mutated afterwards.
    """

    def __init__(self, rules: RobotsRules | None = None) -> None:
        self.rules = rules or RobotsRules()

    @classmethod
    def from_text(cls, contents: str | bytes | None) -> "RobotsPolicy":
        return cls(parse_robots_txt(contents))

    @classmethod
    def permissive(cls) -> "RobotsPolicy":
        return cls()

    def has_rules_for(self, user_agent: str | None) -> bool:
        if not user_agent:
            return False
        agent = user_agent.lower()
        return (
            agent in self.rules.disallow
            or agent in self.rules.allow
            or agent in self.rules.sitemap
            or agent in self.rules.crawl_delay
        )

    def _rule_set_agent(self, user_agent: str | None) -> str | None:
        agent = (user_agent or WILDCARD_AGENT).lower()
        if agent in self.rules.disallow or agent in self.rules.allow:
            return agent
        if WILDCARD_AGENT in self.rules.disallow or WILDCARD_AGENT in self.rules.allow:
            return WILDCARD_AGENT
        return None

    def is_allowed(self, user_agent: str | None, path: str | None) -> bool:
        """Longest-prefix match between Allow and Disallow; ties go to Allow."""

        path = path or "/"
        if not path.startswith("/"):
            path = "/" + path

        agent = self._rule_set_agent(user_agent)
        if agent is None:
            return True

        disallows = [
            rule for rule in self.rules.disallow.get(agent, []) if rule not in _ALLOW_ALL_DISALLOWS
        ]
        allows = [rule for rule in self.rules.allow.get(agent, []) if rule]

        disallow_length = _longest_prefix(path, disallows)
        allow_length = _longest_prefix(path, allows)

        if disallow_length < 0:
            return True
        return allow_length >= disallow_length

    def crawl_delay(self, user_agent: str | None) -> float:
        """Crawl delay in seconds for the agent, falling back to `*`, else 0."""

        agent = (user_agent or WILDCARD_AGENT).lower()
        if agent in self.rules.crawl_delay:
            return self.rules.crawl_delay[agent]
        return self.rules.crawl_delay.get(WILDCARD_AGENT, 0.0)

    def sitemap_for(self, user_agent: str | None) -> str | None:
        agent = (user_agent or WILDCARD_AGENT).lower()
        return self.rules.sitemap.get(agent) or self.rules.sitemap.get(WILDCARD_AGENT)


__all__ = [
    "RobotsPolicy",
    "RobotsRules",
    "WILDCARD_AGENT",
    "parse_robots_txt",
]
