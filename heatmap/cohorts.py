"""
Cohort selection for the DEG heatmap
Splits significant genes into up- and down-regulated cohorts under a row budget
"""
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

import pandas as pd
from loguru import logger

from .error_handling import NoSignificantGenesError


@dataclass(frozen=True)
class GeneRecord:
    """One row of a differential-expression table"""
    gene_id: str
    log_fold_change: float
    adjusted_p_value: float


@dataclass(frozen=True)
class Cohort:
    """Ordered gene identifiers of one regulation direction"""
    name: str  # 'up' or 'down'
    gene_ids: Tuple[str, ...] = ()
    log_fold_changes: Tuple[float, ...] = ()

    def __post_init__(self):
        if len(self.gene_ids) != len(self.log_fold_changes):
            raise ValueError(
                f"Cohort '{self.name}' has {len(self.gene_ids)} genes but "
                f"{len(self.log_fold_changes)} fold changes"
            )

    def __len__(self):
        return len(self.gene_ids)

    @property
    def is_empty(self) -> bool:
        return len(self.gene_ids) == 0

    @classmethod
    def from_records(cls, name: str, records: Sequence[GeneRecord]) -> 'Cohort':
        return cls(
            name=name,
            gene_ids=tuple(r.gene_id for r in records),
            log_fold_changes=tuple(r.log_fold_change for r in records)
        )


def records_from_dataframe(
    df: pd.DataFrame,
    gene_col: str,
    logfc_col: str,
    padj_col: str
) -> List[GeneRecord]:
    """
    Convert a DE results table into GeneRecords

    Args:
        df: DE results, one row per gene
        gene_col: Column holding gene identifiers
        logfc_col: Column holding log2 fold changes
        padj_col: Column holding adjusted p-values

    Returns:
        List of GeneRecord in table order. Unparseable numbers become NaN
        and are dropped later by the significance filter.
    """
    for col in (gene_col, logfc_col, padj_col):
        if col not in df.columns:
            raise KeyError(f"Column '{col}' not found in DE table. Available columns: {list(df.columns)}")

    genes = df[gene_col].astype(str)
    lfc = pd.to_numeric(df[logfc_col], errors='coerce')
    padj = pd.to_numeric(df[padj_col], errors='coerce')

    records = [
        GeneRecord(gene_id=g, log_fold_change=float(l), adjusted_p_value=float(p))
        for g, l, p in zip(genes, lfc, padj)
    ]
    logger.info(f"Loaded {len(records)} DE records")
    return records


def fold_change_lookup(records: Iterable[GeneRecord]) -> Dict[str, float]:
    """Map gene identifier to its log fold change"""
    return {r.gene_id: r.log_fold_change for r in records}


def is_significant(record: GeneRecord, padj_threshold: float, logfc_threshold: float) -> bool:
    # NaN comparisons are False, so unparsed values never pass
    return (
        record.adjusted_p_value < padj_threshold
        and abs(record.log_fold_change) > logfc_threshold
    )


def split_cohorts(
    records: Iterable[GeneRecord],
    padj_threshold: float = 0.05,
    logfc_threshold: float = 1.0,
    budget: int = 0,
    reserve: int = 1000
) -> Tuple[Cohort, Cohort]:
    """
    Partition significant genes into up- and down-regulated cohorts

    Up genes are ordered by fold change descending and down genes ascending,
    so the most extreme genes survive the budget trim. With a positive
    budget each side is first capped at ceil(budget / 2) + reserve; if the
    combined count still exceeds the budget each side is cut to
    budget // 2.

    Args:
        records: DE records for one comparison
        padj_threshold: Keep genes with adjusted p-value strictly below this
        logfc_threshold: Keep genes with |log fold change| strictly above this
        budget: Total rows wanted across both cohorts (0 = no limit)
        reserve: Extra genes fetched per side before the budget trim

    Returns:
        (up, down) cohorts

    Raises:
        NoSignificantGenesError: if both cohorts are empty
    """
    if budget < 0:
        raise ValueError(f"budget must be >= 0, got {budget}")

    significant = [r for r in records if is_significant(r, padj_threshold, logfc_threshold)]

    up = sorted((r for r in significant if r.log_fold_change > 0),
                key=lambda r: r.log_fold_change, reverse=True)
    down = sorted((r for r in significant if r.log_fold_change < 0),
                  key=lambda r: r.log_fold_change)

    if budget > 0:
        cap = math.ceil(budget / 2) + reserve
        up, down = up[:cap], down[:cap]
        if len(up) + len(down) > budget:
            half = budget // 2
            up, down = up[:half], down[:half]

    if not up and not down:
        raise NoSignificantGenesError(
            f"No genes pass padj < {padj_threshold} and |logFC| > {logfc_threshold}"
        )

    logger.info(
        f"Selected {len(up)} up / {len(down)} down genes "
        f"from {len(significant)} significant (budget={budget or 'all'})"
    )
    return Cohort.from_records('up', up), Cohort.from_records('down', down)
