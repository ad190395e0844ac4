"""
Account Hierarchy Rollups

Provides parent/child account relationship handling for P&L rollups.
Supports:
- Validated account configuration (parent pointers + exclusion flags)
- Parent -> children adjacency in configuration order
- Rollup aggregation (sum children into parents) with operational exclusion

Key Concepts:
- Operational exclusion: in Operational mode a flagged account is left out
  of its parent's sum. Its own total and its subtree are still computed.
- Display exclusion: the account's row is hidden when rendering. It has no
  effect on rollups.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Mapping, Optional, Set, Tuple

from pnl_engine.core.error_taxonomy import ConfigError
from pnl_engine.core.input_schemas import AccountConfigSchema, validate_payload
from pnl_engine.tools.formatter import to_amount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountSettings:
    """Hierarchy position and display flags for one account."""
    parent: Optional[str] = None
    operational_excluded: bool = False
    display_excluded: bool = False
    double_lines: bool = False
    label: Optional[str] = None

    def is_hidden(self, is_operational: bool) -> bool:
        """Whether the account's own row is elided when rendering."""
        if is_operational:
            return self.operational_excluded or self.display_excluded
        return self.display_excluded

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "parent": self.parent,
            "operationalExcluded": self.operational_excluded,
            "displayExcluded": self.display_excluded,
            "doubleLines": self.double_lines,
        }
        if self.label is not None:
            result["label"] = self.label
        return result


_NO_SETTINGS = AccountSettings()


class AccountConfig:
    """
    Ordered mapping of account id to AccountSettings.

    Lookups of unknown accounts return default settings (no parent, no flags).
    """

    def __init__(self, accounts: Mapping[str, AccountSettings] = None):
        self._accounts: Dict[str, AccountSettings] = dict(accounts or {})

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "AccountConfig":
        """
        Build from the configuration store's camelCase mapping.

        Raises:
            ConfigError: if the payload does not match the expected shape
        """
        if raw is None:
            return cls()
        if isinstance(raw, AccountConfig):
            return raw

        is_valid, parsed, errors = validate_payload(raw, AccountConfigSchema)
        if not is_valid:
            raise ConfigError(
                f"Invalid account configuration: {'; '.join(errors)}",
                context={"errors": errors},
            )

        return cls({
            account_id: AccountSettings(
                parent=entry.parent,
                operational_excluded=entry.operational_excluded,
                display_excluded=entry.display_excluded,
                double_lines=entry.double_lines,
                label=entry.label,
            )
            for account_id, entry in parsed.root.items()
        })

    def get(self, account_id: str) -> AccountSettings:
        return self._accounts.get(account_id, _NO_SETTINGS)

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._accounts

    def __iter__(self) -> Iterator[str]:
        return iter(self._accounts)

    def __len__(self) -> int:
        return len(self._accounts)

    def items(self):
        return self._accounts.items()

    def validate(self) -> "AccountConfig":
        """
        Check that the parent relation is acyclic.

        Raises:
            ConfigError: naming the accounts that form the cycle
        """
        # 0 = unvisited, 1 = on current parent chain, 2 = known to reach a root
        state: Dict[str, int] = {}

        for start in self._accounts:
            chain: List[str] = []
            current: Optional[str] = start
            while current is not None and state.get(current, 0) == 0:
                state[current] = 1
                chain.append(current)
                current = self.get(current).parent

            if current is not None and state.get(current) == 1:
                loop = chain[chain.index(current):] + [current]
                raise ConfigError.cycle(loop)

            for account in chain:
                state[account] = 2

        return self

    def displayable_accounts(self, is_operational: bool = False) -> List[str]:
        """Accounts whose rows are not hidden under the given mode."""
        return [a for a, s in self._accounts.items() if not s.is_hidden(is_operational)]

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {a: s.to_dict() for a, s in self._accounts.items()}


class HierarchyIndex:
    """Parent -> ordered children adjacency derived from an AccountConfig."""

    def __init__(self, children: Mapping[str, List[str]] = None):
        self._children: Dict[str, Tuple[str, ...]] = {
            parent: tuple(kids) for parent, kids in (children or {}).items()
        }

    @classmethod
    def from_config(cls, config: AccountConfig) -> "HierarchyIndex":
        """Scan the configuration once; children keep configuration order."""
        children: Dict[str, List[str]] = {}
        for account_id, settings in config.items():
            if settings.parent:
                children.setdefault(settings.parent, []).append(account_id)
        return cls(children)

    def children_of(self, account_id: str) -> Tuple[str, ...]:
        return self._children.get(account_id, ())

    def has_children(self, account_id: str) -> bool:
        return bool(self._children.get(account_id))

    @property
    def parents(self) -> List[str]:
        return list(self._children)

    def to_dict(self) -> Dict[str, List[str]]:
        return {parent: list(kids) for parent, kids in self._children.items()}


class RollupResult(Mapping[str, float]):
    """
    Rolled-up totals for one period and scenario.

    Missing accounts read as 0.0; `in` still reports only computed accounts.
    """

    def __init__(self, totals: Mapping[str, float] = None):
        self._totals: Dict[str, float] = dict(totals or {})

    def __getitem__(self, account_id: str) -> float:
        return self._totals.get(account_id, 0.0)

    def __contains__(self, account_id: object) -> bool:
        return account_id in self._totals

    def __iter__(self) -> Iterator[str]:
        return iter(self._totals)

    def __len__(self) -> int:
        return len(self._totals)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RollupResult):
            return self._totals == other._totals
        if isinstance(other, Mapping):
            return self._totals == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"RollupResult({self._totals!r})"

    def to_dict(self) -> Dict[str, float]:
        return dict(self._totals)


class RollupEngine:
    """
    Accumulates each account's total including its descendants.

    The engine holds only configuration; every `compute` call owns its own
    memo, so one engine can serve the four period/scenario rollups of a
    report (or several reports on different threads).
    """

    def __init__(
        self,
        config: AccountConfig,
        index: HierarchyIndex = None,
        is_operational: bool = False,
    ):
        self.config = config
        self.index = index or HierarchyIndex.from_config(config)
        self.is_operational = is_operational

    def _counts_toward_parent(self, child: str) -> bool:
        return not (self.is_operational and self.config.get(child).operational_excluded)

    def compute(self, raw_totals: Mapping[str, float]) -> RollupResult:
        """
        Roll up raw per-account totals for every configured account.

        Iterative post-order walk with an in-progress marker per account, so
        a cyclic hierarchy fails with ConfigError instead of recursing forever.

        Raises:
            ConfigError: if the hierarchy contains a cycle
        """
        totals: Dict[str, float] = {}
        in_progress: Set[str] = set()

        for root in self.config:
            if root in totals:
                continue

            # Each frame: [account, index of next child, running total]
            stack: List[List[Any]] = [[root, 0, to_amount(raw_totals.get(root))]]
            in_progress.add(root)

            while stack:
                frame = stack[-1]
                account, position = frame[0], frame[1]
                kids = self.index.children_of(account)

                if position < len(kids):
                    frame[1] += 1
                    child = kids[position]

                    if child in totals:
                        if self._counts_toward_parent(child):
                            frame[2] += totals[child]
                        continue

                    if child in in_progress:
                        path = [f[0] for f in stack]
                        raise ConfigError.cycle(path[path.index(child):] + [child])

                    in_progress.add(child)
                    stack.append([child, 0, to_amount(raw_totals.get(child))])
                    continue

                # All children folded in
                stack.pop()
                in_progress.discard(account)
                totals[account] = frame[2]

                if stack and self._counts_toward_parent(account):
                    stack[-1][2] += frame[2]

        logger.debug(
            f"Rolled up {len(totals)} accounts "
            f"({'operational' if self.is_operational else 'standard'} mode)"
        )
        return RollupResult(totals)


def compute_rollups(
    raw_totals: Mapping[str, float],
    config: AccountConfig,
    index: HierarchyIndex = None,
    is_operational: bool = False,
) -> RollupResult:
    """Convenience wrapper for a single rollup."""
    return RollupEngine(config, index, is_operational).compute(raw_totals)


def check_hierarchy(raw_config: Mapping[str, Any]) -> AccountConfig:
    """Parse and validate a raw account configuration in one step."""
    return AccountConfig.from_dict(raw_config).validate()
