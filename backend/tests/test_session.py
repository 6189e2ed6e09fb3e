from siterouter.db.session import engine_options


def test_postgres_engine_waits_are_bounded_by_store_timeout() -> None:
    options = engine_options('postgresql+psycopg://app@db/sites', 2_000)
    assert options == {'pool_pre_ping': True, 'pool_timeout': 2.0, 'connect_args': {'connect_timeout': 2}}


def test_connect_timeout_rounds_up_to_whole_seconds() -> None:
    assert engine_options('postgresql+psycopg://app@db/sites', 250)['connect_args'] == {'connect_timeout': 1}
    assert engine_options('postgresql+psycopg://app@db/sites', 1_500)['connect_args'] == {'connect_timeout': 2}


def test_sqlite_and_disabled_timeouts_keep_default_pool() -> None:
    assert engine_options('sqlite+pysqlite://', 2_000) == {'pool_pre_ping': True}
    assert engine_options('postgresql+psycopg://app@db/sites', 0) == {'pool_pre_ping': True}
    assert engine_options('postgresql+psycopg://app@db/sites', None) == {'pool_pre_ping': True}
