from .pedigree import (
    CycleError,
    DuplicateIdError,
    Pedigree,
    PedigreeError,
    Sex,
    ShapeMismatchError,
    is_missing_parent,
    normalize_sex,
)
from .qc import BirthDateReport, QCReport, check_birth_date_order, pedigree_qc
from .cycles import CycleReport, detect_cycles
from .kinship import (
    build_additive_matrix,
    inbreeding_coefficients,
    make_kinship_fn,
    topological_order,
)
from .lineage import (
    DeepestAncestor,
    DepthSession,
    find_deepest_ancestor,
    lap_depths,
    lap_distribution,
)
from .descendants import DescendantSummary, descendant_summary

__version__ = "0.1.0"
