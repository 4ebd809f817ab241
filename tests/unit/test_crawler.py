"""Tests for sfdict.crawler."""

import pytest

from sfdict.crawler import RelationshipCrawler, TraversalState, object_dependencies
from sfdict.exceptions import ObjectDescribeFailed


class TestTraversalState:
    def test_mark_returns_only_unseen_sorted(self):
        """Only names not yet visited come back, and are added to both sets."""
        state = TraversalState()
        assert state.mark(["B__c", "A__c"]) == ["A__c", "B__c"]
        assert state.mark(["A__c", "C__c"]) == ["C__c"]
        assert state.visited == {"A__c", "B__c", "C__c"}
        assert state.result_set <= state.visited


class TestObjectDependencies:
    def test_custom_lookup_and_master_detail_followed(self, make_object):
        """Custom reference fields of both kinds add their primary target."""
        desc = make_object("Enrolment__c", lookups=["Course__c"], master_details=["Student__c"])
        assert object_dependencies(desc, set()) == {"Course__c", "Student__c"}

    def test_user_target_and_standard_fields_ignored(self, make_object):
        """Lookups to User and non-custom reference fields are not edges."""
        desc = make_object("Enrolment__c", lookups=["User"], std_lookups=["Owner"])
        assert object_dependencies(desc, set()) == set()

    def test_custom_parent_follows_standard_child_with_custom_fields(self, make_object):
        """Standard children count only when they carry custom fields and the parent is custom."""
        desc = make_object("Enrolment__c", children=["Contact", "Task", "Line__c"])
        assert object_dependencies(desc, {"Contact"}) == {"Contact", "Line__c"}

    def test_standard_parent_never_follows_standard_child(self, make_object):
        """Standard-to-standard relationships are never traversed."""
        desc = make_object("Account", children=["Contact", "Line__c"])
        assert object_dependencies(desc, {"Contact"}) == {"Line__c"}


class TestCrawl:
    def test_enrolment_scenario(self, make_object, make_catalog):
        """Standard lookup targets are discovered but not expanded; custom children recurse."""
        catalog = make_catalog(
            objects=[
                make_object("Enrolment__c", lookups=["Account"], children=["Enrolment_Line__c"]),
                make_object("Enrolment_Line__c", lookups=["Product__c"]),
                make_object("Product__c"),
                make_object("Account", children=["Opportunity__c"]),
            ]
        )

        result = RelationshipCrawler(catalog).crawl("Enrolment__c")

        assert result == ["Account", "Enrolment_Line__c", "Enrolment__c", "Product__c"]
        assert "Account" not in catalog.described
        assert "Enrolment_Line__c" in catalog.described

    def test_allow_listed_standard_object_is_expanded(self, make_object, make_catalog):
        """An allow-listed standard object gets its own fields and children crawled."""
        catalog = make_catalog(
            objects=[
                make_object("Enrolment__c", lookups=["Account"]),
                make_object("Account", children=["Opportunity__c"]),
                make_object("Opportunity__c"),
            ]
        )

        result = RelationshipCrawler(catalog).crawl("Enrolment__c", ["Account"])

        assert result == ["Account", "Enrolment__c", "Opportunity__c"]

    def test_cycle_terminates_and_describes_each_once(self, make_object, make_catalog):
        """A -> B -> C -> A, plus A -> C, describes every object exactly once."""
        catalog = make_catalog(
            objects=[
                make_object("A__c", lookups=["B__c", "C__c"]),
                make_object("B__c", lookups=["C__c"]),
                make_object("C__c", lookups=["A__c"], children=["A__c", "B__c"]),
            ]
        )

        result = RelationshipCrawler(catalog, max_workers=4).crawl("A__c")

        assert result == ["A__c", "B__c", "C__c"]
        assert sorted(catalog.described) == ["A__c", "B__c", "C__c"]

    def test_self_reference(self, make_object, make_catalog):
        """Self-lookups (hierarchies) do not loop."""
        catalog = make_catalog(objects=[make_object("Node__c", lookups=["Node__c"])])
        assert RelationshipCrawler(catalog).crawl("Node__c") == ["Node__c"]
        assert catalog.described == ["Node__c"]

    def test_diamond_schedules_shared_child_once(self, make_object, make_catalog):
        """Two parents discovering the same child schedule it once."""
        catalog = make_catalog(
            objects=[
                make_object("Root__c", children=["Left__c", "Right__c"]),
                make_object("Left__c", lookups=["Shared__c"]),
                make_object("Right__c", lookups=["Shared__c"]),
                make_object("Shared__c"),
            ]
        )

        RelationshipCrawler(catalog, max_workers=8).crawl("Root__c")

        assert catalog.described.count("Shared__c") == 1

    def test_managed_seed_is_a_boundary(self, make_object, make_catalog):
        """A managed seed returns just itself and is never described."""
        catalog = make_catalog(
            objects=[make_object("ns__Pkg__c", lookups=["Other__c"]), make_object("Other__c")],
            custom_objects=[("ns__Pkg__c", "ns"), ("Other__c", None)],
        )

        assert RelationshipCrawler(catalog).crawl("ns__Pkg__c") == ["ns__Pkg__c"]
        assert catalog.described == []

    def test_managed_dependency_is_discovered_not_expanded(self, make_object, make_catalog):
        """Managed objects reached from the seed appear but are not traversed into."""
        catalog = make_catalog(
            objects=[
                make_object("Mine__c", lookups=["ns__Pkg__c"]),
                make_object("ns__Pkg__c", lookups=["Hidden__c"]),
            ],
            custom_objects=[("ns__Pkg__c", "ns"), ("Mine__c", None)],
        )

        assert RelationshipCrawler(catalog).crawl("Mine__c") == ["Mine__c", "ns__Pkg__c"]
        assert "ns__Pkg__c" not in catalog.described

    def test_standard_seed_is_expanded(self, make_object, make_catalog):
        """The seed is expanded even when it is a standard object."""
        catalog = make_catalog(
            objects=[make_object("Account", children=["Site__c"]), make_object("Site__c")]
        )
        assert RelationshipCrawler(catalog).crawl("Account") == ["Account", "Site__c"]

    def test_standard_child_with_custom_fields_discovered(self, make_object, make_catalog):
        """Standard children with custom fields come from custom-field metadata."""
        catalog = make_catalog(
            objects=[make_object("Case_File__c", children=["Task", "Event", "Note"])],
            custom_fields=[("Activity.Due__c", "objects/Activity.object")],
        )

        result = RelationshipCrawler(catalog).crawl("Case_File__c")

        assert result == ["Case_File__c", "Event", "Task"]

    def test_idempotent(self, make_object, make_catalog):
        """Same catalog answers give the same result set."""
        objects = [
            make_object("A__c", lookups=["B__c"], children=["C__c"]),
            make_object("B__c", children=["D__c"]),
            make_object("C__c"),
            make_object("D__c", lookups=["A__c"]),
        ]
        first = RelationshipCrawler(make_catalog(objects=objects)).crawl("A__c")
        second = RelationshipCrawler(make_catalog(objects=objects)).crawl("A__c")
        assert first == second == ["A__c", "B__c", "C__c", "D__c"]

    def test_describe_failure_propagates_with_object_name(self, make_object, make_catalog):
        """A failing branch fails the crawl and names the object."""
        catalog = make_catalog(objects=[make_object("A__c", lookups=["Missing__c"])])

        with pytest.raises(ObjectDescribeFailed) as excinfo:
            RelationshipCrawler(catalog).crawl("A__c")

        assert excinfo.value.object_name == "Missing__c"
        assert "Missing__c" in str(excinfo.value)

    def test_unknown_seed_fails(self, make_catalog):
        """A seed the catalog cannot describe is a crawl failure."""
        with pytest.raises(ObjectDescribeFailed):
            RelationshipCrawler(make_catalog()).crawl("Nope__c")

    def test_fresh_state_per_crawl(self, make_object, make_catalog):
        """Two crawls on one crawler do not share visited state."""
        catalog = make_catalog(
            objects=[make_object("A__c", lookups=["B__c"]), make_object("B__c")]
        )
        crawler = RelationshipCrawler(catalog)

        assert crawler.crawl("A__c") == ["A__c", "B__c"]
        assert crawler.crawl("B__c") == ["B__c"]
        assert crawler.crawl("A__c") == ["A__c", "B__c"]
