from .context import SimulationContext, SolverConfig
from .exceptions import (
    ConfigurationError,
    ConvergenceError,
    CovarianceError,
    EpiforecastError,
    NumericalInstabilityError,
)
from .fitting.estimation import EstimatorConfig, FitResult, fit_mle
from .likelihood import PoissonLikelihood
from .parameters import Fixed, Free, ParameterSpec, ParameterVector
from .reproduction import (
    basic_reproduction_number,
    reproduction_number,
    reproduction_number_over,
    threshold_crossing_time,
)
from .seird import SEIRDModel, transmission_rate, transmission_rate_over
from .uncertainty import EnsembleBands, TrajectoryEnsemble, UncertaintyEngine
from .utils.data_utils import ObservedSeries

__version__ = "0.1.0"
