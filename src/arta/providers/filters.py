"""
WHERE clause evaluation shared by the query and action providers.

A WhereClause holds one or more condition chains.  Each chain is evaluated
left to right: the running result is combined with the next comparison using
the operator that links them (no precedence between AND and OR).  All chains
of a clause must match.
"""

import re
from typing import Any, Callable, Dict, Optional

from ..ast import CompareOp, Condition, ConditionExpr, Literal, LogicalOp, ValueKind, WhereClause

# Numeric equality tolerance
EPSILON = 0.001

# Resolves a variable name to (python value, ValueKind) or None
Lookup = Callable[[str], Optional[tuple]]


def resolve_literal(literal: Literal, lookup: Optional[Lookup] = None):
    """
    Return (value, kind) for a literal, substituting a bound variable for an
    identifier. An unbound identifier is compared as plain text.
    """
    if literal.kind == ValueKind.IDENTIFIER:
        if lookup is not None:
            bound = lookup(literal.value)
            if bound is not None:
                return bound
        return literal.value, ValueKind.STRING
    return literal.value, literal.kind


def compare_numbers(left: float, right: float, op: CompareOp) -> bool:
    if op == CompareOp.EQ:
        return abs(left - right) < EPSILON
    if op == CompareOp.NE:
        return abs(left - right) >= EPSILON
    if op == CompareOp.GT:
        return left > right
    if op == CompareOp.GE:
        return left >= right
    if op == CompareOp.LT:
        return left < right
    if op == CompareOp.LE:
        return left <= right
    return False


def like_to_regex(pattern: str, ignore_case: bool = False):
    """SQL LIKE pattern ('%' any run of characters) as an anchored regex."""
    body = ".*".join(re.escape(part) for part in pattern.split("%"))
    flags = re.IGNORECASE if ignore_case else 0
    return re.compile(f"^{body}$", flags | re.DOTALL)


def compare_strings(left: str, right: str, op: CompareOp, ignore_case: bool = False) -> bool:
    if ignore_case and op != CompareOp.MATCHES:
        left, right = left.lower(), right.lower()
    if op == CompareOp.EQ:
        return left == right
    if op == CompareOp.NE:
        return left != right
    if op == CompareOp.LIKE:
        return like_to_regex(right, ignore_case).match(left) is not None
    if op == CompareOp.CONTAINS:
        return right in left
    if op == CompareOp.MATCHES:
        try:
            return re.search(right, left, re.IGNORECASE if ignore_case else 0) is not None
        except re.error:
            return False
    return False


def compare_field(actual: Any, op: CompareOp, value, kind: ValueKind,
                  ignore_case: bool = False) -> bool:
    """
    Compare a record field against a resolved filter value.

    Numeric fields accept NUMBER and SIZE values; text fields accept text and
    paths. Any other pairing does not match.
    """
    if isinstance(actual, bool):
        if kind != ValueKind.BOOLEAN:
            return False
        if op == CompareOp.EQ:
            return actual == value
        if op == CompareOp.NE:
            return actual != value
        return False
    if isinstance(actual, (int, float)):
        if kind not in (ValueKind.NUMBER, ValueKind.SIZE):
            return False
        return compare_numbers(float(actual), float(value), op)
    if isinstance(actual, str):
        if kind not in (ValueKind.STRING, ValueKind.PATH):
            return False
        return compare_strings(actual, str(value), op, ignore_case)
    return False


def matches_condition(fields: Dict[str, Any], condition: Condition,
                      lookup: Optional[Lookup] = None, ignore_case: bool = False) -> bool:
    """
    Test one comparison against a record's field map. A field the record does
    not have does not filter.
    """
    name = condition.field.lower()
    if name not in fields:
        return True
    actual = fields[name]
    if actual is None:
        return False
    value, kind = resolve_literal(condition.value, lookup)
    return compare_field(actual, condition.operator, value, kind, ignore_case)


def matches_chain(fields: Dict[str, Any], chain: ConditionExpr,
                  lookup: Optional[Lookup] = None, ignore_case: bool = False) -> bool:
    links = chain.links()
    result = matches_condition(fields, links[0].condition, lookup, ignore_case)
    for prev, node in zip(links, links[1:]):
        matched = matches_condition(fields, node.condition, lookup, ignore_case)
        if prev.logical_op == LogicalOp.OR:
            result = result or matched
        else:
            result = result and matched
    return result


def evaluate_where(fields: Dict[str, Any], where: Optional[WhereClause],
                   lookup: Optional[Lookup] = None, ignore_case: bool = False) -> bool:
    """True when the record with the given fields passes the filter."""
    if where is None:
        return True
    return all(matches_chain(fields, chain, lookup, ignore_case)
               for chain in where.conditions)
