"""Issue accumulator passed explicitly through every validation check."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .models import Issue, IssueKind, Severity

LOG = logging.getLogger(__name__)


class Report:
    """Collects :class:`Issue` values and informational notes.

    Issues are only ever appended.  A report created through :meth:`scoped`
    forwards everything it records to its parent, so a caller can tell
    whether one cluster's checks passed without consulting any shared
    state, while the parent still holds the complete run.
    """

    def __init__(self, scope: Optional[str] = None, parent: Optional["Report"] = None) -> None:
        self._scope = scope
        self._parent = parent
        self._issues: List[Issue] = []
        self._notes: List[str] = []

    @property
    def scope(self) -> Optional[str]:
        return self._scope

    def scoped(self, scope: str) -> "Report":
        """Return a child report whose entries also land in this one."""

        return Report(scope=scope, parent=self)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------
    def add(self, issue: Issue) -> Issue:
        self._issues.append(issue)
        if issue.is_failure:
            LOG.error("%s%s", self._prefix(), issue.message)
        else:
            LOG.warning("%s%s", self._prefix(), issue.message)
        if self._parent is not None:
            self._parent._propagate(issue)
        return issue

    def extend(self, issues: Iterable[Issue]) -> None:
        for issue in issues:
            self.add(issue)

    def failure(
        self,
        message: str,
        kind: Optional[IssueKind] = None,
        *,
        clusters: Sequence[str] = (),
        subnet: Optional[str] = None,
    ) -> Issue:
        return self.add(
            Issue(
                severity=Severity.FAILURE,
                message=message,
                kind=kind,
                clusters=tuple(clusters),
                subnet=subnet,
            )
        )

    def warning(
        self,
        message: str,
        kind: Optional[IssueKind] = None,
        *,
        clusters: Sequence[str] = (),
    ) -> Issue:
        return self.add(
            Issue(
                severity=Severity.WARNING,
                message=message,
                kind=kind,
                clusters=tuple(clusters),
            )
        )

    def success(self, message: str) -> None:
        self._notes.append(message)
        LOG.info("%s%s", self._prefix(), message)
        if self._parent is not None:
            self._parent._propagate_note(message)

    def _propagate(self, issue: Issue) -> None:
        self._issues.append(issue)
        if self._parent is not None:
            self._parent._propagate(issue)

    def _propagate_note(self, message: str) -> None:
        self._notes.append(message)
        if self._parent is not None:
            self._parent._propagate_note(message)

    def _prefix(self) -> str:
        return f"[{self._scope}] " if self._scope else ""

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------
    @property
    def issues(self) -> List[Issue]:
        return list(self._issues)

    @property
    def notes(self) -> List[str]:
        return list(self._notes)

    @property
    def failures(self) -> List[Issue]:
        return [i for i in self._issues if i.severity is Severity.FAILURE]

    @property
    def warnings(self) -> List[Issue]:
        return [i for i in self._issues if i.severity is Severity.WARNING]

    @property
    def ok(self) -> bool:
        """True when no failure was recorded; warnings are informational."""

        return not self.failures

    def of_kind(self, kind: IssueKind) -> List[Issue]:
        return [i for i in self._issues if i.kind is kind]
