import datetime
import sys

import pandas as pd
import pyarrow as pa
import pytest
from pgmarshal.options import ConnectionOptions, _scriptname, iterdict_data_loader
from pgmarshal.options import pandas_numpy_data_loader, pandas_pyarrow_data_loader
from pgmarshal.types import Column, Float32, Int16, Int32, python_codec


def test_init_defaults():
    """Test default initialization"""
    options = ConnectionOptions(
        hostname='testhost',
        username='testuser',
        password='testpass',
        database='testdb',
        port=1234,
        timeout=30
    )

    assert options.client_encoding == 'WIN1251'
    assert options.codec == 'cp1251'
    assert options.appname is not None
    assert options.data_loader == iterdict_data_loader


def test_conninfo():
    options = ConnectionOptions(hostname='testhost', username='u', database='d',
                                port=1234, timeout=30, appname='loader')
    conninfo = options.to_conninfo()

    assert 'host=testhost' in conninfo
    assert 'user=u' in conninfo
    assert 'dbname=d' in conninfo
    assert 'port=1234' in conninfo
    assert 'connect_timeout=30' in conninfo
    assert 'application_name=loader' in conninfo
    assert 'password' not in conninfo


def test_unset_values_left_out():
    conninfo = ConnectionOptions(database='d').to_conninfo()
    assert 'port' not in conninfo
    assert 'connect_timeout' not in conninfo
    assert 'host' not in conninfo


def test_validation():
    """Test validation rules"""
    with pytest.raises(ValueError):
        ConnectionOptions(client_encoding='EBCDIC')
    with pytest.raises(ValueError):
        ConnectionOptions(port=-1)
    with pytest.raises(ValueError):
        ConnectionOptions(timeout=-5)


def test_python_codec():
    assert python_codec('win1251') == 'cp1251'
    assert python_codec('KOI8-R') == 'koi8-r'
    assert python_codec('UTF8') == 'utf-8'


def test_iterdict_data_loader():
    assert iterdict_data_loader([], []) == []
    assert iterdict_data_loader(({'a': 1},), []) == [{'a': 1}]


def test_pandas_numpy_data_loader():
    """Test pandas_numpy_data_loader function"""
    data = [{'name': 'Alice', 'age': 30}, {'name': 'Bob', 'age': 25}]
    column_info = [Column(name='name', type_code=25, python_type=str),
                   Column(name='age', type_code=23, python_type=int)]

    result = pandas_numpy_data_loader(data, column_info)
    assert isinstance(result, pd.DataFrame)
    assert list(result.columns) == Column.get_names(column_info)
    assert len(result) == 2
    assert result.iloc[0]['name'] == 'Alice'
    assert result.iloc[1]['age'] == 25
    assert result.attrs['column_types']['age']['type_code'] == 23


@pytest.mark.skipif(
    not hasattr(pd, 'ArrowDtype'),
    reason='ArrowDtype not available in this pandas version'
)
def test_pandas_pyarrow_data_loader():
    """Test pandas_pyarrow_data_loader function"""
    data = [{'name': 'Alice', 'age': 30}, {'name': 'Bob', 'age': 25}]
    column_info = [Column(name='name', type_code=None), Column(name='age', type_code=None)]

    result = pandas_pyarrow_data_loader(data, column_info)
    assert isinstance(result, pd.DataFrame)
    assert list(result.columns) == Column.get_names(column_info)
    assert len(result) == 2
    assert result.iloc[0]['name'] == 'Alice'
    assert result.iloc[1]['age'] == 25


def test_numpy_loader_uses_server_types():
    data = [{'id': 1, 'ratio': 0.5, 'active': True, 'name': 'a'}]
    columns = [Column('id', 21, Int16), Column('ratio', 700, Float32),
               Column('active', 16, bool), Column('name', 25, str)]

    df = pandas_numpy_data_loader(data, columns)

    assert str(df['id'].dtype) == 'int16'
    assert str(df['ratio'].dtype) == 'float32'
    assert str(df['active'].dtype) == 'bool'
    assert df['name'].dtype == object


def test_empty_numpy_frame_keeps_types():
    df = pandas_numpy_data_loader([], [Column('id', 23, Int32), Column('name', 25, str)])
    assert len(df) == 0
    assert str(df['id'].dtype) == 'int32'
    assert df['name'].dtype == object


@pytest.mark.skipif(
    not hasattr(pd, 'ArrowDtype'),
    reason='ArrowDtype not available in this pandas version'
)
def test_pyarrow_loader_uses_server_types():
    created = datetime.datetime(2023, 5, 15, 10, 30, 45, 123000)
    data = [{'id': 7, 'payload': b'\x00\x01', 'created': created}]
    columns = [Column('id', 23, Int32), Column('payload', 17, bytes),
               Column('created', 1114, datetime.datetime)]

    df = pandas_pyarrow_data_loader(data, columns)

    assert df['id'].dtype == pd.ArrowDtype(pa.int32())
    assert df['payload'].dtype == pd.ArrowDtype(pa.binary())
    assert df['created'].dtype == pd.ArrowDtype(pa.timestamp('ms'))
    assert df.iloc[0]['payload'] == b'\x00\x01'

    empty = pandas_pyarrow_data_loader([], columns)
    assert empty['id'].dtype == pd.ArrowDtype(pa.int32())


def test_appname_defaults_to_script_name(monkeypatch):
    monkeypatch.setattr(sys, 'argv', ['/opt/jobs/nightly_load.py', '--full'])
    assert ConnectionOptions().appname == 'nightly_load'
    assert _scriptname('tools/report.py') == 'report'

    monkeypatch.setattr(sys, 'argv', [''])
    assert _scriptname() == ''
    assert ConnectionOptions().appname == 'python_console'


def test_column_helpers():
    columns = [Column('id', 23, int), Column('name', 25, str)]
    assert Column.get_column_by_name(columns, 'name').type_code == 25
    assert Column.get_column_by_name(columns, 'missing') is None
    assert Column.get_column_types_dict(columns)['id']['python_type'] == 'int'


if __name__ == '__main__':
    __import__('pytest').main([__file__])
