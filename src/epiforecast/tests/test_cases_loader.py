import numpy as np
import pandas as pd
import pytest

from dataio.cases import CaseSeriesConfig, case_table, load_case_series
from epiforecast.exceptions import ConfigurationError
from epiforecast.utils.data_utils import ObservedSeries


def _write(tmp_path, rows, header="Date,Cases"):
    path = tmp_path / "cases.csv"
    path.write_text("\n".join([header] + rows) + "\n")
    return path


def test_load_drops_missing_and_parses_day_first(tmp_path):
    """
    - dates are day/month/year
    - rows without a count are dropped, not treated as zero
    - first count is forced to zero
    """
    path = _write(tmp_path, ["01/04/2014,5", "02/04/2014,", "03/04/2014,2", "10/04/2014,7"])
    series = load_case_series(path)

    np.testing.assert_array_equal(series.times, [0.0, 2.0, 9.0])
    np.testing.assert_array_equal(series.cases, [0, 2, 7])
    assert series.total_cases == 9
    assert series.name == "cases"


def test_start_anchor_offsets_times(tmp_path):
    path = _write(tmp_path, ["05/01/2015,0", "06/01/2015,3"], header="Day,Count")
    cfg = CaseSeriesConfig(date_col="day", cases_col="count", start_date="01/01/2015")
    series = load_case_series(path, cfg)
    np.testing.assert_array_equal(series.times, [4.0, 5.0])


def test_anchor_after_first_date_is_rejected(tmp_path):
    path = _write(tmp_path, ["05/01/2015,0", "06/01/2015,3"])
    with pytest.raises(ConfigurationError):
        load_case_series(path, CaseSeriesConfig(start_date="06/01/2015"))


def test_unsorted_rows_are_ordered():
    df = pd.DataFrame({"Date": ["03/05/2014", "01/05/2014", "02/05/2014"], "Cases": [3, 0, 1]})
    table = case_table(df, CaseSeriesConfig())
    assert table["cases"].tolist() == [0, 1, 3]
    assert table["time"].tolist() == [0.0, 1.0, 2.0]


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_case_series(tmp_path / "nope.csv")


def test_observed_series_validation():
    with pytest.raises(ConfigurationError):
        ObservedSeries(times=[0.0, 2.0, 1.0], cases=[0, 1, 2])
    with pytest.raises(ConfigurationError):
        ObservedSeries(times=[0.0, 1.0], cases=[0, -1])
    with pytest.raises(ConfigurationError):
        ObservedSeries(times=[0.0, 1.0], cases=[0, 1.5])
    with pytest.raises(ConfigurationError):
        ObservedSeries(times=[], cases=[])


def test_observed_series_is_read_only():
    series = ObservedSeries.daily([4, 1, 2])
    assert series.cases[0] == 0
    with pytest.raises(ValueError):
        series.cases[1] = 10
    df = series.to_dataframe()
    assert df["cumulative"].tolist() == [0, 1, 3]


def test_from_dataframe_drops_missing_counts():
    df = pd.DataFrame({"time": [0.0, 1.0, 2.0], "cases": [0, None, 4]})
    series = ObservedSeries.from_dataframe(df)
    np.testing.assert_array_equal(series.times, [0.0, 2.0])


def test_series_hashes_by_identity():
    a = ObservedSeries.daily([0, 1, 2])
    b = ObservedSeries.daily([0, 1, 2])
    assert a == a
    assert a != b
    assert len({a, b}) == 2
