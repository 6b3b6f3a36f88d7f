import pytest

from keystroke_histogram import HashTable, HistogramConfig, HistogramController


@pytest.fixture
def config() -> HistogramConfig:
    return HistogramConfig(log_file="")


@pytest.fixture
def table() -> HashTable:
    ht = HashTable()
    yield ht
    ht.destroy()


@pytest.fixture
def controller(config):
    master = HistogramController(config, setup_logging=False)
    master.initialize()
    yield master
    master.teardown()
