"""
===========================================================
exceptions.py
Author: Veronica Scerra
Last Updated: 2026-10-12
===========================================================

Description:
    Error types raised by the fitting and projection pipeline.

Notes:
    - ConfigurationError is raised before any integration work.
    - NumericalInstabilityError is turned into a likelihood penalty
      during optimization, but is fatal inside the ensemble.
-----------------------------------------------------------
License: MIT
===========================================================
"""


class EpiforecastError(Exception):
    """Base class for all package errors"""


class ConfigurationError(EpiforecastError, ValueError):
    """Invalid parameter assignment, context or input series"""


class NumericalInstabilityError(EpiforecastError, ArithmeticError):
    """ODE integration failed or produced negative / non-finite incidence"""


class ConvergenceError(EpiforecastError, RuntimeError):
    """Optimizer did not converge; downstream propagation is refused"""


class CovarianceError(EpiforecastError, ValueError):
    """Covariance matrix is missing or not a valid (symmetric PSD) covariance"""
