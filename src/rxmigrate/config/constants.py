"""Configuration constants.

Scoring weights for the pattern classifier and fixed vocabulary shared by the
scanner, generator and validator. Review thresholds that users may tune live
in ``ClassifierThresholds`` (models.py); the values here are their defaults.
"""

# =============================================================================
# Store files
# =============================================================================

STORE_FILE_SUFFIX = ".store.ts"
"""Naming convention for signal-store source files."""

STORE_FILE_GLOB = "*.store.ts"
"""Discovery pattern used when no explicit file list is given."""

OVERSIZED_FILE_BYTES = 100 * 1024
"""Files above this size get a pre-conversion warning."""

REQUIRED_DEPENDENCIES: tuple[str, ...] = ("@ngrx/signals", "rxjs")
"""Runtime packages the converted code needs in package.json."""

# =============================================================================
# Generated code vocabulary
# =============================================================================

RXMETHOD_MODULE = "@ngrx/signals/rxjs-interop"
SIGNALS_MODULE = "@ngrx/signals"
RXJS_MODULE = "rxjs"
DEFAULT_HELPERS_MODULE = "../../../utils/RxMethodUtils"

REACTIVE_MARKER = "rxMethod"
COMPLETION_CALL = "lastValueFrom"
OPTIMISTIC_HELPER = "createOptimisticUpdatePattern"
BULK_HELPER = "createBulkOperationPattern"
SHARED_HELPERS: tuple[str, ...] = (OPTIMISTIC_HELPER, BULK_HELPER, "createLoadingStatePattern")

MANUAL_REVIEW_MARKER = "MANUAL REVIEW REQUIRED"

DEPENDENCY_VOCABULARY: tuple[str, ...] = (
    "patchState",
    "lastValueFrom",
    "firstValueFrom",
    "from",
    OPTIMISTIC_HELPER,
    BULK_HELPER,
)
"""State-mutation and utility calls recorded as method dependencies."""

# =============================================================================
# Scanner defaults
# =============================================================================

DEFAULT_CONFIDENCE = 85
"""Placeholder confidence stamped on every scanned method."""

# =============================================================================
# Classifier review thresholds
# =============================================================================
# Each rule flags its own result for review below its threshold. The values
# are kept as found; they are not derived from one another.

MANUAL_REVIEW_CONFIDENCE = 60
SIMPLE_LOAD_REVIEW_THRESHOLD = 60
OPTIMISTIC_REVIEW_THRESHOLD = 70
BULK_REVIEW_THRESHOLD = 65
ALTERNATIVE_MIN_CONFIDENCE = 30
CUSTOM_MIN_CONFIDENCE = 20

# =============================================================================
# Classifier weights
# =============================================================================

# simple-load
SIMPLE_LOADING_WEIGHT = 30
SIMPLE_SINGLE_COLLABORATOR_WEIGHT = 25
SIMPLE_MULTI_COLLABORATOR_PENALTY = 10
SIMPLE_PATCH_STATE_WEIGHT = 20
SIMPLE_ERROR_HANDLING_WEIGHT = 15
SIMPLE_TYPED_RESULT_WEIGHT = 10
SIMPLE_OPTIMISTIC_PENALTY = 40
SIMPLE_BULK_PENALTY = 30
SIMPLE_LARGE_BODY_PENALTY = 10

# optimistic-update
OPTIMISTIC_MARKER_WEIGHT = 40
OPTIMISTIC_SNAPSHOT_WEIGHT = 35
OPTIMISTIC_ROLLBACK_WEIGHT = 30
OPTIMISTIC_MULTI_PATCH_WEIGHT = 25
OPTIMISTIC_CATCH_RESTORE_WEIGHT = 20
OPTIMISTIC_UPDATE_NAME_WEIGHT = 15
OPTIMISTIC_COLLECTION_EDIT_WEIGHT = 15
OPTIMISTIC_NO_PATCH_PENALTY = 30
OPTIMISTIC_BULK_PENALTY = 20
OPTIMISTIC_COMPLEX_PATCH_COUNT = 3

# bulk-operation
BULK_NAME_WEIGHT = 40
BULK_PROMISE_ALL_WEIGHT = 35
BULK_ITERATION_WEIGHT = 30
BULK_ARRAY_PARAM_WEIGHT = 25
BULK_MULTI_CALL_WEIGHT = 20
BULK_PROGRESS_WEIGHT = 15
BULK_BATCH_WEIGHT = 15
BULK_NO_FANOUT_PENALTY = 40

# custom-fallback complexity penalty
CUSTOM_LENGTH_TIERS: tuple[tuple[int, int], ...] = ((2000, 30), (1000, 15))
CUSTOM_PER_AWAIT_PENALTY = 10
CUSTOM_MANY_AWAITS = 3
CUSTOM_MANY_AWAITS_PENALTY = 20
CUSTOM_PER_TRY_PENALTY = 10
CUSTOM_MULTI_TRY_PENALTY = 15
CUSTOM_PER_BRANCH_KIND_PENALTY = 10
CUSTOM_HIGH_COMPLEXITY = 40

LARGE_BODY_CHARS = 1000
"""Bodies longer than this get a complexity warning from simple-load."""
