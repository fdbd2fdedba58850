"""
seo_checker/services/rule_registry.py
Rule registration and the one place rules are invoked.

A rule is a plain function whose parameter names are the data slices it
needs (see RuleInputs). The registry hands each rule only those slices and
converts anything it raises into a single fail finding.
"""
import inspect
import logging
from dataclasses import dataclass
from functools import cached_property
from typing import Callable, Dict, List, Optional, Tuple

from ..models import (
    AuxData, CategoryId, Entitlement, Finding, FindingStatus, PageSnapshot,
)
from . import page_parser

logger = logging.getLogger(__name__)


class RuleInputs:
    """Lazily-resolved data slices for one snapshot + aux bundle.

    Each public cached property is a slice name a rule can ask for. A slice
    that fails to extract raises on access, so only rules that asked for it
    are affected.
    """

    def __init__(self, snapshot: PageSnapshot, aux: AuxData):
        self._snapshot = snapshot
        self._aux = aux

    @classmethod
    def slice_names(cls) -> frozenset:
        return frozenset(
            name for name, value in vars(cls).items()
            if isinstance(value, cached_property)
        )

    # ── Page-level ───────────────────────────────────────────────────────────
    @cached_property
    def url(self) -> str:
        return self._snapshot.url

    @cached_property
    def document(self):
        return page_parser.parse_html(self._snapshot.html)

    @cached_property
    def title(self) -> str:
        dom_title = page_parser.extract_title(self.document)
        if dom_title is None:
            return (self._snapshot.title or "").strip()
        return dom_title

    @cached_property
    def meta_description(self) -> Optional[str]:
        return page_parser.extract_meta_content(self.document, "description")

    @cached_property
    def headings(self) -> Dict[str, List[str]]:
        return page_parser.extract_headings(self.document)

    @cached_property
    def h1_texts(self) -> List[str]:
        return self.headings["h1"]

    @cached_property
    def canonical(self) -> Optional[str]:
        return page_parser.extract_canonical(self.document)

    @cached_property
    def jsonld_blocks(self) -> List[str]:
        return page_parser.extract_jsonld_blocks(self.document)

    @cached_property
    def viewport(self) -> Optional[str]:
        return page_parser.extract_meta_content(self.document, "viewport")

    @cached_property
    def robots_directives(self):
        return page_parser.extract_robots_directives(self.document)

    @cached_property
    def hreflangs(self) -> List[str]:
        return page_parser.extract_hreflangs(self.document)

    @cached_property
    def images(self):
        return page_parser.extract_images(self.document)

    @cached_property
    def html_lang(self) -> Optional[str]:
        return page_parser.extract_html_lang(self.document)

    @cached_property
    def insecure_elements(self) -> List[str]:
        return page_parser.extract_insecure_elements(self.document)

    @cached_property
    def word_count(self) -> int:
        return page_parser.count_words(self.document)

    # ── Snapshot data ────────────────────────────────────────────────────────
    @cached_property
    def redirect_chains(self) -> Dict[str, List[str]]:
        return self._snapshot.redirect_chains

    @cached_property
    def load_time_ms(self) -> int:
        return self._snapshot.load_time_ms

    @cached_property
    def resources(self):
        return self._snapshot.resources

    @cached_property
    def response_headers(self) -> Optional[Dict[str, str]]:
        return self._snapshot.response_headers

    # ── Aux data ─────────────────────────────────────────────────────────────
    @cached_property
    def robots(self):
        return self._aux.robots

    @cached_property
    def sitemap(self):
        return self._aux.sitemap

    @cached_property
    def link_checks(self):
        return self._aux.link_checks

    @cached_property
    def unavailable(self) -> Dict[str, str]:
        return self._aux.unavailable


@dataclass(frozen=True)
class Rule:
    rule_id: str
    name: str
    category: CategoryId
    func: Callable
    params: Tuple[str, ...]
    requires: Optional[str] = None


def crash_finding(rule: Rule, exc: BaseException) -> Finding:
    return Finding(
        rule=rule.rule_id,
        name=rule.name,
        status=FindingStatus.FAIL,
        message=f"Rule '{rule.rule_id}' could not be evaluated",
        details=f"{type(exc).__name__}: {str(exc)[:200]}",
    )


class RuleRegistry:
    def __init__(self):
        self._rules: List[Rule] = []

    def rule(self, category: CategoryId, rule_id: str, name: str, requires: str = None):
        """Decorator registering a check function under a category."""
        known = RuleInputs.slice_names()

        def decorator(func: Callable) -> Callable:
            params = tuple(inspect.signature(func).parameters)
            unknown = [p for p in params if p not in known]
            if unknown:
                raise ValueError(f"Rule {rule_id!r} asks for unknown inputs: {unknown}")
            if any(r.rule_id == rule_id for r in self._rules):
                raise ValueError(f"Rule {rule_id!r} registered twice")
            self._rules.append(Rule(rule_id, name, CategoryId(category), func, params, requires))
            return func

        return decorator

    @property
    def rules(self) -> List[Rule]:
        return list(self._rules)

    def categories(self) -> List[CategoryId]:
        present = {r.category for r in self._rules}
        return [c for c in CategoryId if c in present]

    def run_rule(self, rule: Rule, inputs: RuleInputs) -> List[Finding]:
        """Invoke one rule. Nothing it raises escapes this method."""
        try:
            kwargs = {p: getattr(inputs, p) for p in rule.params}
            result = rule.func(**kwargs)
            if result is None:
                return []
            findings = [result] if isinstance(result, Finding) else list(result)
            for f in findings:
                if not isinstance(f, Finding):
                    raise TypeError(f"rule returned {type(f).__name__}, expected Finding")
            return findings
        except Exception as e:
            logger.exception("Rule %s crashed", rule.rule_id)
            return [crash_finding(rule, e)]

    def evaluate(
        self, inputs: RuleInputs, entitlement: Entitlement,
    ) -> Tuple[Dict[CategoryId, List[Finding]], List[CategoryId]]:
        """
        Run every registered rule the entitlement allows.
        Returns findings per evaluated category (canonical order) and the
        categories skipped because none of their rules were allowed to run.
        """
        evaluated: Dict[CategoryId, List[Finding]] = {}
        skipped_rules: Dict[CategoryId, int] = {}

        for rule in self._rules:
            if rule.requires and not entitlement.allows(rule.requires):
                skipped_rules[rule.category] = skipped_rules.get(rule.category, 0) + 1
                continue
            evaluated.setdefault(rule.category, []).extend(self.run_rule(rule, inputs))

        ordered = {c: evaluated[c] for c in CategoryId if c in evaluated}
        skipped = [c for c in CategoryId if c in skipped_rules and c not in evaluated]
        return ordered, skipped
