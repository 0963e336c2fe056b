import json
from pathlib import Path

import pytest
from rich.console import Console

from pyadata.cli.main import main as cli_main
from pyadata.cli.schema_inspect import describe_codec, describe_type, inspect_schema
from pyadata.schema import BaseType, MemberDefinition


def _write_schema(tmp_path: Path) -> Path:
    path = tmp_path / 'inv.json'
    path.write_text(json.dumps({
        'namespace': 'inv',
        'types': [{'name': 'Item', 'members': [
            {'name': 'sku', 'type': 'uint32', 'fixed': True},
            {'name': 'title', 'type': 'string', 'size': 64},
            {'name': 'stock', 'type': 'map', 'params': [{'type': 'string'}, {'type': 'int32'}]},
            {'name': 'old', 'type': 'float64', 'deleted': True},
            {'name': 'qty', 'type': 'int16', 'default': '5'},
        ]}],
    }), encoding='utf-8')
    return path


def test_describe_type_and_codec() -> None:
    member = MemberDefinition('m', BaseType.MAP, params=(
        MemberDefinition('', BaseType.STRING),
        MemberDefinition('', BaseType.LIST, params=(MemberDefinition('', BaseType.INT32, fixed=True),)),
    ))
    assert describe_type(member) == 'map<string,list<int32>>'
    assert describe_codec(member) == 'u32 + str u32 + fix_i32'
    assert describe_codec(MemberDefinition('n', BaseType.TYPE, typename='geo.Point')) == 'frame'
    assert describe_type(MemberDefinition('n', BaseType.TYPE, typename='geo.Point')) == 'geo.Point'


def test_inspect_schema_prints_layout(tmp_path: Path) -> None:
    console = Console(record=True, width=120)
    definition = inspect_schema(_write_schema(tmp_path), console)
    output = console.export_text()

    assert definition.namespace == 'inv'
    assert 'inv.Item' in output
    assert 'fix_u32' in output
    assert 'map<string,int32>' in output
    assert '64' in output
    assert 'yes' in output


def test_cli_inspect(tmp_path: Path, capsys) -> None:
    cli_main(['inspect', str(_write_schema(tmp_path))])
    output = capsys.readouterr().out
    assert 'inv.Item' in output
    assert 'title' in output


def test_cli_inspect_invalid_schema(tmp_path: Path, capsys) -> None:
    path = tmp_path / 'dup.json'
    path.write_text(json.dumps({'namespace': 'd', 'types': [{'name': 'T'}, {'name': 'T'}]}), encoding='utf-8')
    with pytest.raises(SystemExit) as info:
        cli_main(['inspect', str(path)])
    assert info.value.code == 1
    assert 'Duplicate type name' in capsys.readouterr().err
