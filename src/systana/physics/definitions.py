"""Example neutrino-interaction variables, cuts and systematics.

Record fields follow the flat reconstruction schema: `Elep_reco` (GeV),
`theta_reco` (rad), `LepPDG`, `nP`, `nipip`, `nipim`, `nipi0`, `isCC`, `nuPDG`, `Ev`.
"""

from __future__ import annotations

import math

from systana.core.registry import register_cut, register_systematic, register_var
from systana.core.var import NO_CUT, Cut, Var, field_var
from systana.physics.constants import E_B, M_MU, M_N, M_P, PDG_MU, PDG_NUMU
from systana.syst.shapes import ScaleSyst, SmearSyst


def qe_formula(e_mu: float, cos_mu: float) -> float:
    """Quasi-elastic neutrino energy from muon energy and angle (neutrino mode)."""

    p_mu = math.sqrt(e_mu**2 - M_MU**2)
    num = M_P**2 - (M_N - E_B) ** 2 - M_MU**2 + 2.0 * (M_N - E_B) * e_mu
    denom = 2.0 * (M_N - E_B - e_mu + p_mu * cos_mu)
    if denom == 0:
        return 0.0
    return num / denom


def _reco_qe_energy(record) -> float:
    e_mu = float(record["Elep_reco"])
    # shifts can push the muon below its mass
    if e_mu < M_MU:
        return 0.0
    cos_mu = math.cos(float(record["theta_reco"]))
    if math.isnan(e_mu) or math.isnan(cos_mu):
        return 0.0
    return qe_formula(e_mu, cos_mu)


def _has_cc0pi_final_state(record) -> bool:
    n_pi = int(record["nipip"]) + int(record["nipim"]) + int(record["nipi0"])
    return abs(int(record["LepPDG"])) == PDG_MU and int(record["nP"]) >= 1 and n_pi == 0


def _is_numu_cc(record) -> bool:
    return bool(record["isCC"]) and int(record["nuPDG"]) == PDG_NUMU


TRUE_ENERGY = field_var("Ev", "true_energy")
RECO_MUON_ENERGY = field_var("Elep_reco", "reco_muon_energy")
RECO_QE_ENERGY = Var(_reco_qe_energy, "reco_qe_energy")

CC0PI = Cut(_has_cc0pi_final_state, "cc0pi")
CC0PI_RECO = CC0PI & (RECO_QE_ENERGY > 0)
NUMU_CC = Cut(_is_numu_cc, "numu_cc")

MU_SCALE = ScaleSyst("muScale", "Muon energy scale", field="Elep_reco", k=0.2)
# one-sided: a -1 sigma smear is the same distribution as +1
MU_SMEAR = SmearSyst("muSmear", "Muon energy smearing", field="Elep_reco", width=0.2, mode="mul")
THETA_SMEAR = SmearSyst("thetaSmear", "Muon angle smearing", field="theta_reco", width=math.pi / 6.0, mode="add")


def register() -> None:
    register_var("true_energy", TRUE_ENERGY)
    register_var("reco_muon_energy", RECO_MUON_ENERGY)
    register_var("reco_qe_energy", RECO_QE_ENERGY)

    register_cut("cc0pi", CC0PI)
    register_cut("cc0pi_reco", CC0PI_RECO)
    register_cut("numu_cc", NUMU_CC)
    register_cut("all", NO_CUT)

    register_systematic(MU_SCALE)
    register_systematic(MU_SMEAR)
    register_systematic(THETA_SMEAR)
