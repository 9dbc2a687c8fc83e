"""Rule list assembly from base rules and configured custom rules."""

from typing import List, Mapping, Optional, Sequence

from .models import CustomRulesConfig, Rule, RuleFactory


class UnknownRuleError(ValueError):
    """A configured custom rule has no factory."""


def build_rules(
    base: Sequence[Rule],
    factories: Mapping[str, RuleFactory],
    custom: Optional[CustomRulesConfig] = None,
) -> List[Rule]:
    """
    Ordered rules for a filler.

    Without a custom selection the base rules run alone. With one, the
    selected rules run after the base rules, or instead of them when
    ``keep_base_rules`` is false.

    Raises:
        UnknownRuleError: a selected rule name has no factory.
    """
    if custom is None:
        return list(base)

    selected: List[Rule] = []
    for entry in custom.rules:
        factory = factories.get(entry.name)
        if factory is None:
            raise UnknownRuleError(f"Unknown rule: {entry.name}")
        selected.append(factory(entry.args) if entry.args is not None else factory())

    if custom.keep_base_rules:
        return [*base, *selected]
    return selected
