"""
Tests for notify target and property name resolution.

These tests verify:
1. Property names follow the notify marker rules exactly
2. A local target wins over an inherited one
3. Targets are found on base types, including in other modules
4. Wrong target signatures and unresolvable bases are fatal
"""

import pytest

from notifyweave.errors import ResolutionError, WeaveRule, WeavingError
from notifyweave.markers import (
    NOTIFY_MARKER,
    Marker,
    NotificationMode,
    notify,
    suppress_notify,
)
from notifyweave.model import ModuleDef, PropertyDef, STRING_TYPE_NAME, TypeRef
from notifyweave.resolution.property_names import get_notify_property_names
from notifyweave.resolution.target_resolver import get_notify_target

from conftest import make_session, make_target_method, make_type, write_image


def names_for(*markers: Marker) -> list:
    return list(get_notify_property_names(PropertyDef(name="Prop", markers=list(markers))))


# =============================================================================
# PROPERTY NAME TESTS
# =============================================================================

class TestPropertyNames:
    """Test the notify marker rules."""

    def test_no_marker_yields_nothing(self):
        assert names_for() == []

    def test_unrelated_marker_yields_nothing(self):
        assert names_for(suppress_notify()) == []

    def test_marker_without_arguments_yields_own_name(self):
        assert names_for(notify()) == ["Prop"]

    def test_null_argument_yields_null(self):
        assert names_for(notify(null=True)) == [None]

    def test_empty_list_yields_own_name(self):
        assert names_for(Marker(NOTIFY_MARKER, ([],))) == ["Prop"]

    def test_list_preserves_order_and_duplicates(self):
        assert names_for(notify("B", "A", "B")) == ["B", "A", "B"]

    def test_result_is_lazy(self):
        result = get_notify_property_names(PropertyDef(name="Prop", markers=[notify()]))
        assert not isinstance(result, list)
        assert next(result) == "Prop"


class TestNotificationMode:
    """Test mode argument parsing."""

    @pytest.mark.parametrize("value, expected", [
        ("Implicit", NotificationMode.IMPLICIT),
        ("explicit", NotificationMode.EXPLICIT),
        ("IMPLICIT", NotificationMode.IMPLICIT),
        (0, NotificationMode.EXPLICIT),
        (1, NotificationMode.IMPLICIT),
    ])
    def test_parse(self, value, expected):
        assert NotificationMode.parse(value) == expected

    @pytest.mark.parametrize("value", [2, "Loud", None, True])
    def test_parse_rejects_unknown(self, value):
        with pytest.raises(ValueError):
            NotificationMode.parse(value)


# =============================================================================
# TARGET RESOLUTION TESTS
# =============================================================================

class TestTargetResolution:
    """Test local and inherited notify targets."""

    def test_local_target(self):
        module = ModuleDef(name="Sample")
        type_def = module.add_type(make_type("T"))

        target = get_notify_target(type_def, make_session(module).metadata_resolver)

        assert target.name == "OnPropertyChanged"
        assert target.declaring_type == TypeRef("Sample", "Sample.T")
        assert target.parameter_types == (STRING_TYPE_NAME,)

    def test_no_target_returns_none(self):
        module = ModuleDef(name="Sample")
        type_def = module.add_type(make_type("T", with_target=False))

        assert get_notify_target(type_def, make_session(module).metadata_resolver) is None

    def test_inherited_target_same_module(self):
        module = ModuleDef(name="Sample")
        module.add_type(make_type("Base", is_notifier=False))
        derived = module.add_type(make_type(
            "Derived", with_target=False, base_type=TypeRef("Sample", "Sample.Base"),
        ))

        target = get_notify_target(derived, make_session(module).metadata_resolver)

        assert target.declaring_type.full_name == "Sample.Base"
        assert module.references == []

    def test_inherited_target_two_levels_up(self):
        module = ModuleDef(name="Sample")
        module.add_type(make_type("Root", is_notifier=False))
        module.add_type(make_type(
            "Middle", is_notifier=False, with_target=False,
            base_type=TypeRef("Sample", "Sample.Root"),
        ))
        leaf = module.add_type(make_type(
            "Leaf", with_target=False, base_type=TypeRef("Sample", "Sample.Middle"),
        ))

        target = get_notify_target(leaf, make_session(module).metadata_resolver)

        assert target.declaring_type.full_name == "Sample.Root"

    def test_local_target_wins_over_inherited(self):
        module = ModuleDef(name="Sample")
        module.add_type(make_type("Base", is_notifier=False))
        derived = module.add_type(make_type(
            "Derived", with_target=False, base_type=TypeRef("Sample", "Sample.Base"),
        ))
        derived.add_method(make_target_method("RaiseChanged"))

        target = get_notify_target(derived, make_session(module).metadata_resolver)

        assert target.name == "RaiseChanged"
        assert target.declaring_type.full_name == "Sample.Derived"

    def test_cross_module_target_is_imported(self, tmp_path):
        core = ModuleDef(name="Core")
        core.add_type(make_type("ObservableBase", is_notifier=False, namespace="Core"))
        write_image(tmp_path / "Core.json", core)

        app = ModuleDef(name="App")
        derived = app.add_type(make_type(
            "ViewModel", with_target=False, namespace="App",
            base_type=TypeRef("Core", "Core.ObservableBase"),
        ))

        session = make_session(app, search_dirs=[tmp_path])
        target = get_notify_target(derived, session.metadata_resolver)

        assert target.declaring_type == TypeRef("Core", "Core.ObservableBase")
        assert app.references == ["Core"]

    def test_unresolvable_base_module_is_fatal(self, tmp_path):
        app = ModuleDef(name="App")
        derived = app.add_type(make_type(
            "ViewModel", with_target=False, base_type=TypeRef("Missing", "Missing.Base"),
        ))

        with pytest.raises(ResolutionError) as exc_info:
            get_notify_target(derived, make_session(app, search_dirs=[tmp_path]).metadata_resolver)
        assert exc_info.value.rule == WeaveRule.W5_UNRESOLVED_REFERENCE

    def test_missing_base_type_in_module_is_fatal(self):
        module = ModuleDef(name="Sample")
        derived = module.add_type(make_type(
            "Derived", with_target=False, base_type=TypeRef("Sample", "Sample.Nowhere"),
        ))

        with pytest.raises(ResolutionError, match="Sample.Nowhere"):
            get_notify_target(derived, make_session(module).metadata_resolver)

    def test_type_that_is_its_own_base_is_fatal(self):
        module = ModuleDef(name="Sample")
        type_def = module.add_type(make_type(
            "T", with_target=False, base_type=TypeRef("Sample", "Sample.T"),
        ))

        with pytest.raises(ResolutionError) as exc_info:
            get_notify_target(type_def, make_session(module).metadata_resolver)

        assert exc_info.value.rule == WeaveRule.W5_UNRESOLVED_REFERENCE
        assert "loops back" in exc_info.value.reason

    def test_base_chain_cycle_is_fatal(self):
        module = ModuleDef(name="Sample")
        a = module.add_type(make_type(
            "A", with_target=False, base_type=TypeRef("Sample", "Sample.B"),
        ))
        module.add_type(make_type(
            "B", is_notifier=False, with_target=False, base_type=TypeRef("Sample", "Sample.A"),
        ))

        with pytest.raises(ResolutionError) as exc_info:
            get_notify_target(a, make_session(module).metadata_resolver)

        assert exc_info.value.rule == WeaveRule.W5_UNRESOLVED_REFERENCE
        assert exc_info.value.location == "Sample.A"

    def test_target_above_shared_base_still_found_twice(self):
        module = ModuleDef(name="Sample")
        module.add_type(make_type("Base", is_notifier=False))
        left = module.add_type(make_type(
            "Left", with_target=False, base_type=TypeRef("Sample", "Sample.Base"),
        ))
        right = module.add_type(make_type(
            "Right", with_target=False, base_type=TypeRef("Sample", "Sample.Base"),
        ))
        resolver = make_session(module).metadata_resolver

        assert get_notify_target(left, resolver).declaring_type.full_name == "Sample.Base"
        assert get_notify_target(right, resolver).declaring_type.full_name == "Sample.Base"


class TestTargetValidation:
    """Test notify target signature checks."""

    @pytest.mark.parametrize("param_types", [
        (),
        ("System.Int32",),
        (STRING_TYPE_NAME, STRING_TYPE_NAME),
    ])
    def test_wrong_signature_is_fatal(self, param_types):
        module = ModuleDef(name="Sample")
        type_def = module.add_type(make_type("T", with_target=False))
        type_def.add_method(make_target_method("Bad", param_types))

        with pytest.raises(WeavingError) as exc_info:
            get_notify_target(type_def, make_session(module).metadata_resolver)

        assert exc_info.value.rule == WeaveRule.W2_INVALID_TARGET_SIGNATURE
        assert "Sample.T.Bad" in exc_info.value.reason

    def test_wrong_signature_on_base_is_fatal(self):
        module = ModuleDef(name="Sample")
        base = module.add_type(make_type("Base", is_notifier=False, with_target=False))
        base.add_method(make_target_method("Bad", ("System.Object",)))
        derived = module.add_type(make_type(
            "Derived", with_target=False, base_type=TypeRef("Sample", "Sample.Base"),
        ))

        with pytest.raises(WeavingError, match="Sample.Base.Bad"):
            get_notify_target(derived, make_session(module).metadata_resolver)
