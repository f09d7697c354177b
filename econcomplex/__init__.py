from .matrix_processor import LabeledMatrix, ValueMatrix, build_value_matrix
from .comparative_advantage import SpecializationMatrix, balassa_index
from .economic_fitness_complexity import ComplexityResult, EconomicComplexity, complexity_measures
from .relatedness_metrics import (
    ProjectionResult, ProximityResult, RelatednessMetrics, detect_communities, projections, proximity
)
from .complexity_outlook import ComplexityOutlook, OutlookResult, complexity_outlook, density
from .productivity import ProductivityResult, productivity_levels
from .exceptions import ConvergenceError, DegenerateInput, EconComplexError, InvalidInput
