import pytest

from systana.core.registry import CUTS, SYSTEMATICS, VARIABLES, Registry, RegistryError, clear_registry
from systana.physics import MU_SCALE, register_builtins
from systana.syst.shapes import ScaleSyst


def test_register_and_get():
    reg = Registry("systematic", "systana.tests.none")
    syst = ScaleSyst("s", "scale", field="e", k=0.1)
    reg.register("s", syst)
    assert reg.get(" s ") is syst
    # same object again is a no-op
    reg.register("s", syst)
    assert reg.names() == ["s"]


def test_conflicting_registration_needs_replace():
    reg = Registry("systematic", "systana.tests.none")
    reg.register("s", ScaleSyst("s", "a", field="e", k=0.1))
    with pytest.raises(RegistryError):
        reg.register("s", ScaleSyst("s", "b", field="e", k=0.2))
    other = ScaleSyst("s", "c", field="e", k=0.3)
    reg.register("s", other, replace=True)
    assert reg.get("s") is other


def test_unknown_and_empty_names():
    reg = Registry("cut", "systana.tests.none")
    with pytest.raises(RegistryError, match="Unknown cut 'missing'"):
        reg.get("missing")
    with pytest.raises(RegistryError):
        reg.register("  ", object())


def test_clear_registry_then_builtins_come_back():
    register_builtins()
    clear_registry()
    try:
        assert SYSTEMATICS.names() == []
        assert VARIABLES.names() == []
        assert CUTS.names() == []
    finally:
        register_builtins()
    assert SYSTEMATICS.get("muScale") is MU_SCALE
    assert "cc0pi_reco" in CUTS.names()
