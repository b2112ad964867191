"""Extraction of station temperatures from the yearly CSV files.

Stations file lines:     STN,WBAN,latitude,longitude
Temperatures file lines: STN,WBAN,month,day,temperature (°F)

Stations are identified by the (STN, WBAN) pair, either part may be empty.
"""

from pathlib import Path
from typing import Iterable, List, Tuple, Union

import numpy as np
import pandas as pd
from loguru import logger

from observatory.model.models import Location, Observation

STATION_COLUMNS = ["stn", "wban", "lat", "lon"]
TEMPERATURE_COLUMNS = ["stn", "wban", "month", "day", "temperature"]
EXTRA_COLUMN = "extra"

Record = Tuple[pd.Timestamp, Location, float]


def fahrenheit_to_celsius(temperature: Union[float, pd.Series]) -> Union[float, pd.Series]:
    return (temperature - 32) * 5 / 9


def _read_lines(path: Path, columns: List[str]) -> pd.DataFrame:
    """
    Read a header-less CSV as strings.

    Only lines with exactly len(columns) fields are kept; shorter lines leave
    NaN in the missing fields and are dropped by the callers.
    """
    if not path.exists():
        logger.error(f"File '{path}' does not exist.")
        raise FileNotFoundError(f"File '{path}' does not exist.")
    df = pd.read_csv(
        path,
        header=None,
        names=columns + [EXTRA_COLUMN],
        index_col=False,
        dtype=str,
        keep_default_na=False,
        on_bad_lines="skip",
    )
    df = df.replace("", np.nan)
    too_long = df[EXTRA_COLUMN].notna()
    if too_long.any():
        logger.debug(f"  Skipping {too_long.sum()} lines with too many fields in {path}")
    return df.loc[~too_long, columns]


def _to_numbers(df: pd.DataFrame, columns: List[str]) -> pd.DataFrame:
    """Convert `columns` to floats, dropping rows where any of them is missing or not a number."""
    df = df.copy()
    for column in columns:
        df[column] = pd.to_numeric(df[column], errors="coerce")
    return df.dropna(subset=columns).copy()


def read_stations(stations_file: str|Path) -> pd.DataFrame:
    """Stations with a known location, columns stn, wban, lat, lon."""
    df = _to_numbers(_read_lines(Path(stations_file), STATION_COLUMNS), ["lat", "lon"])
    df[["stn", "wban"]] = df[["stn", "wban"]].fillna("")
    return df.reset_index(drop=True)


def read_temperatures(year: int, temperatures_file: str|Path) -> pd.DataFrame:
    """Daily readings of one year, columns stn, wban, date, temperature (°C)."""
    df = _to_numbers(_read_lines(Path(temperatures_file), TEMPERATURE_COLUMNS), ["month", "day", "temperature"])
    df[["stn", "wban"]] = df[["stn", "wban"]].fillna("")
    df["date"] = pd.to_datetime(
        pd.DataFrame({"year": year, "month": df["month"].astype(int), "day": df["day"].astype(int)}),
        errors="coerce",
    )
    df = df.dropna(subset=["date"]).copy()
    df["temperature"] = fahrenheit_to_celsius(df["temperature"])
    return df[["stn", "wban", "date", "temperature"]].reset_index(drop=True)


def locate_temperatures(year: int, stations_file: str|Path, temperatures_file: str|Path) -> pd.DataFrame:
    """
    Join the readings of a year with the station locations.

    Args:
        year: Year number
        stations_file: Path of the stations CSV file
        temperatures_file: Path of the temperatures CSV file for `year`

    Returns:
        DataFrame with columns date, lat, lon, temperature (°C). Readings of
        stations without a location are dropped.
    """
    logger.info(f"Locating {year} temperatures from {temperatures_file}")
    stations = read_stations(stations_file)
    temperatures = read_temperatures(year, temperatures_file)
    located = temperatures.merge(stations, on=["stn", "wban"], how="inner")
    logger.debug(f"  {len(located)} of {len(temperatures)} readings located")
    return located[["date", "lat", "lon", "temperature"]]


def location_yearly_average_records(records: Union[pd.DataFrame, Iterable[Record]]) -> List[Observation]:
    """
    Average the readings of each location.

    Args:
        records: Output of locate_temperatures, or (date, location, temperature) triplets

    Returns:
        One (location, mean temperature) pair per location, in order of first appearance
    """
    if isinstance(records, pd.DataFrame):
        df = records[["lat", "lon", "temperature"]]
    else:
        df = pd.DataFrame(
            [(loc.lat, loc.lon, temperature) for _, loc, temperature in records],
            columns=["lat", "lon", "temperature"],
        )
    if df.empty:
        return []

    means = df.groupby(["lat", "lon"], sort=False)["temperature"].mean()
    return [(Location(float(lat), float(lon)), float(mean)) for (lat, lon), mean in means.items()]


def yearly_observations(year: int, stations_file: str|Path, temperatures_file: str|Path) -> List[Observation]:
    """Yearly average observations for one year, straight from the CSV files."""
    return location_yearly_average_records(locate_temperatures(year, stations_file, temperatures_file))
