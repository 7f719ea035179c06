"""
Pure quoting engine.

Classification, policy, synthesis, reconciliation, totals and numbering.
Nothing here touches the database.
"""

from switchboard_quoting.engine.board_naming import apply_board_prefix
from switchboard_quoting.engine.catalog_classifier import (
    CatalogClassification,
    MeterType,
    classify_catalog_entry,
)
from switchboard_quoting.engine.item_identity import (
    ItemIdentity,
    MergeAction,
    MergeInstruction,
    ProposedItem,
    fold_proposals,
    resolve_merge,
)
from switchboard_quoting.engine.item_policy import DEFAULT_POLICY_TABLE, PartPolicy, PolicyTable
from switchboard_quoting.engine.numbering import next_quote_number
from switchboard_quoting.engine.reconciler import ChangeSet, ItemUpdate, reconcile
from switchboard_quoting.engine.synthesizer import (
    DEFAULT_RULES,
    CatalogRecord,
    CatalogSnapshot,
    SynthesisRules,
    synthesize,
)
from switchboard_quoting.engine.totals import BoardTotals, QuoteTotals, compute_quote_totals

__all__ = [
    "apply_board_prefix",
    "CatalogClassification",
    "MeterType",
    "classify_catalog_entry",
    "ItemIdentity",
    "MergeAction",
    "MergeInstruction",
    "ProposedItem",
    "fold_proposals",
    "resolve_merge",
    "DEFAULT_POLICY_TABLE",
    "PartPolicy",
    "PolicyTable",
    "next_quote_number",
    "ChangeSet",
    "ItemUpdate",
    "reconcile",
    "DEFAULT_RULES",
    "CatalogRecord",
    "CatalogSnapshot",
    "SynthesisRules",
    "synthesize",
    "BoardTotals",
    "QuoteTotals",
    "compute_quote_totals",
]
