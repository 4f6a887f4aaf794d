from .column_registry import ColumnRegistry
from .data_table_service import DataTableService
from .distinct_value_cache import DistinctValueCache
from .eager_load_planner import EagerLoadPlanner
from .fingerprint import compute_fingerprint
from .query_assembler import QueryAssembler
from .result_cache import ResultCache
from .table_session_manager import TableSessionManager

__all__ = [
    "ColumnRegistry",
    "DataTableService",
    "DistinctValueCache",
    "EagerLoadPlanner",
    "compute_fingerprint",
    "QueryAssembler",
    "ResultCache",
    "TableSessionManager",
]
