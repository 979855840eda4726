"""
Property-based tests for the authority prerequisite closure.

Property: a candidate authority set passes the closure check exactly when it
contains every transitive prerequisite of each of its members, and the
reported missing prerequisites are exactly what has to be added to make it
pass.
"""
from hypothesis import given, strategies as st

from apps.rbac.authorities import (
    Authority, TENANT_AUTHORITIES, prerequisites_of,
    required_closure_unsatisfied, missing_prerequisites,
)


authority_sets = st.sets(st.sampled_from(list(Authority)))


@given(candidate=authority_sets)
def test_closure_empty_iff_prerequisites_present(candidate):
    all_present = all(prerequisites_of(a) <= candidate for a in candidate)
    assert (required_closure_unsatisfied(candidate) == set()) == all_present


@given(candidate=authority_sets)
def test_adding_missing_prerequisites_satisfies_closure(candidate):
    completed = candidate | missing_prerequisites(candidate)
    assert required_closure_unsatisfied(completed) == set()


@given(candidate=authority_sets)
def test_missing_prerequisites_not_in_candidate(candidate):
    assert missing_prerequisites(candidate).isdisjoint(candidate)


@given(candidate=st.sets(st.sampled_from(sorted(TENANT_AUTHORITIES))))
def test_unsatisfied_is_subset_of_candidate(candidate):
    assert required_closure_unsatisfied(candidate) <= candidate
