"""
Initial train/test splitting.

The test set is held back until the very end of the analysis; everything
else (resampling, tuning) happens on the training set.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd
from sklearn.model_selection import train_test_split

from liftspeed.utils.logging import get_logger

log = get_logger(__name__)

# Below this many rows, numeric stratification is unreliable
MIN_ROWS_FOR_STRATA = 20


@dataclass
class DataSplit:
    """
    Train/test partition of a dataset.

    Attributes:
        data: The full dataset.
        train_index: Positional indices of training rows.
        test_index: Positional indices of test rows.
        strata: Column used for stratification (None if unstratified).
    """

    data: pd.DataFrame
    train_index: np.ndarray
    test_index: np.ndarray
    strata: str | None = None

    def training(self) -> pd.DataFrame:
        """Training rows."""
        return self.data.iloc[self.train_index]

    def testing(self) -> pd.DataFrame:
        """Test rows."""
        return self.data.iloc[self.test_index]

    @property
    def n_train(self) -> int:
        """Number of training rows."""
        return len(self.train_index)

    @property
    def n_test(self) -> int:
        """Number of test rows."""
        return len(self.test_index)

    def __repr__(self) -> str:
        return f"<Training/Testing/Total>\n<{self.n_train}/{self.n_test}/{len(self.data)}>"


def make_strata(
    values: pd.Series,
    breaks: int = 4,
    *,
    min_rows: int = MIN_ROWS_FOR_STRATA,
) -> pd.Series | None:
    """
    Build stratification labels for a column.

    Numeric columns are binned into ``breaks`` quantile groups; nominal
    columns are used as-is with missing values as their own level.

    Returns:
        Labels aligned with ``values`` or None if stratification is not
        feasible (too few rows or a group with fewer than two members).
    """
    if len(values) < min_rows:
        log.warning(
            "Too few rows to stratify, using a simple random split",
            n=len(values),
            min_rows=min_rows,
        )
        return None

    if pd.api.types.is_numeric_dtype(values):
        labels = pd.qcut(values, q=breaks, labels=False, duplicates="drop")
        labels = labels.astype("float").fillna(-1).astype(int).astype(str)
    else:
        labels = values.astype("object").fillna("<missing>").astype(str)

    counts = labels.value_counts()
    if counts.min() < 2:
        log.warning(
            "Stratum with fewer than two rows, using a simple random split",
            smallest=counts.idxmin(),
        )
        return None

    return labels


def initial_split(
    data: pd.DataFrame,
    prop: float = 0.75,
    *,
    strata: str | None = None,
    breaks: int = 4,
    random_state: int | None = None,
) -> DataSplit:
    """
    Split a dataset into training and test sets.

    Args:
        data: Dataset to split.
        prop: Proportion of rows used for training.
        strata: Optional column to stratify on.
        breaks: Number of quantile bins for numeric strata.
        random_state: Seed for reproducibility.

    Returns:
        DataSplit with positional train/test indices.
        Stratification is dropped, with a warning, when it is not feasible
        or when there are more strata than rows in either set.

    Raises:
        ValueError: If prop is outside (0, 1), the data is empty, or the
            strata column does not exist.
    """
    if not 0.0 < prop < 1.0:
        msg = f"prop must be in (0, 1), got: {prop}"
        raise ValueError(msg)
    if data.empty:
        msg = "Cannot split an empty dataset"
        raise ValueError(msg)
    if strata is not None and strata not in data.columns:
        msg = f"Strata column '{strata}' not found in data"
        raise ValueError(msg)

    data = data.reset_index(drop=True)
    positions = np.arange(len(data))
    labels = make_strata(data[strata], breaks) if strata is not None else None

    # Every stratum needs a row in both sets
    n_train = int(np.floor(prop * len(data)))
    n_test = len(data) - n_train
    if labels is not None and labels.nunique() > min(n_train, n_test):
        log.warning(
            "More strata than rows in a partition, using a simple random split",
            n_strata=labels.nunique(),
            n_train=n_train,
            n_test=n_test,
        )
        labels = None

    train_index, test_index = train_test_split(
        positions,
        train_size=prop,
        random_state=random_state,
        stratify=labels,
    )

    split = DataSplit(
        data=data,
        train_index=np.sort(train_index),
        test_index=np.sort(test_index),
        strata=strata if labels is not None else None,
    )

    log.info(
        "Split data",
        n_train=split.n_train,
        n_test=split.n_test,
        strata=split.strata,
    )
    return split

