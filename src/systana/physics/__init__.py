"""Illustrative physics definitions and registration helpers."""

from systana.physics.definitions import (
    CC0PI,
    CC0PI_RECO,
    MU_SCALE,
    MU_SMEAR,
    NUMU_CC,
    RECO_MUON_ENERGY,
    RECO_QE_ENERGY,
    THETA_SMEAR,
    TRUE_ENERGY,
    qe_formula,
)

__all__ = [
    "register_builtins",
    "qe_formula",
    "TRUE_ENERGY",
    "RECO_MUON_ENERGY",
    "RECO_QE_ENERGY",
    "CC0PI",
    "CC0PI_RECO",
    "NUMU_CC",
    "MU_SCALE",
    "MU_SMEAR",
    "THETA_SMEAR",
]


def register_builtins() -> None:
    from systana.physics.definitions import register

    register()
