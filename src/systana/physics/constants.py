"""Particle identifiers, interaction modes and masses used by the example definitions."""

from __future__ import annotations

# GENIE scattering modes
MODE_QE = 1
MODE_DIS = 3
MODE_RES = 4
MODE_MEC = 10

# PDG codes
PDG_E = 11
PDG_NUE = 12
PDG_MU = 13
PDG_NUMU = 14

# GeV
M_P = 0.938
M_N = 0.939
M_MU = 0.106
E_B = 0.028  # nucleon binding energy in argon-40
