import json
from pathlib import Path

import pytest

from pyadata.cli.main import main as cli_main
from pyadata.cli.schema_generate import generate_file
from pyadata.codec import decode, encode
from pyadata.schema.classifier import Tier
from pyadata.schema.compiler import load_module
from pyadata.schema.interning import Interning

SCHEMA = {
    'namespace': 'geo',
    'types': [{'name': 'Point', 'members': [
        {'name': 'x', 'type': 'int32', 'fixed': True},
        {'name': 'y', 'type': 'int32', 'fixed': True},
    ]}],
}


@pytest.fixture
def schema_path(tmp_path: Path) -> Path:
    path = tmp_path / 'geo.json'
    path.write_text(json.dumps(SCHEMA), encoding='utf-8')
    return path


def test_generate_file_defaults_next_to_input(schema_path: Path) -> None:
    output = generate_file(schema_path)
    assert output == schema_path.with_name('geo_adl.py')

    module = load_module(output.read_text(encoding='utf-8'), 'geo_adl')
    data = encode(module.Point(x=3, y=-4))
    assert data == bytes.fromhex('03 08 03 00 00 00 fc ff ff ff')
    assert decode(module.Point, data).y == -4


def test_generate_file_options(schema_path: Path, tmp_path: Path) -> None:
    output = generate_file(
        schema_path,
        tmp_path / 'out.py',
        Tier.ACCELERATED,
        Interning.DIRECT,
        strict_members=True,
    )
    source = output.read_text(encoding='utf-8')
    assert '# tier: accelerated, interning: direct' in source
    assert 'UNDEFINED_MEMBER' in source


def test_cli_generate(schema_path: Path, tmp_path: Path) -> None:
    output = tmp_path / 'generated' / 'points.py'
    output.parent.mkdir()
    cli_main(['generate', str(schema_path), '-o', str(output), '--tier', 'accelerated'])
    assert 'from pyadata.runtime.fast import (' in output.read_text(encoding='utf-8')


def test_cli_generate_to_stdout(schema_path: Path, capsys) -> None:
    cli_main(['generate', str(schema_path), '-o', '-', '--interning', 'indexed'])
    output = capsys.readouterr().out
    assert output.startswith("# Generated by pyadata for namespace 'geo'.")
    assert '# tier: baseline, interning: indexed' in output


def test_cli_generate_reports_schema_errors(tmp_path: Path, capsys) -> None:
    path = tmp_path / 'broken.json'
    path.write_text(json.dumps({'namespace': 'b', 'types': [
        {'name': 'T', 'members': [{'name': 'x', 'type': 'Missing'}]},
    ]}), encoding='utf-8')

    with pytest.raises(SystemExit) as info:
        cli_main(['generate', str(path)])
    assert info.value.code == 1
    assert 'Unresolved nested type' in capsys.readouterr().err
    assert not (tmp_path / 'b_adl.py').exists()


def test_cli_generate_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as info:
        cli_main(['generate', str(tmp_path / 'nope.json')])
    assert info.value.code == 1


def test_cli_rejects_unknown_tier(schema_path: Path) -> None:
    with pytest.raises(SystemExit) as info:
        cli_main(['generate', str(schema_path), '--tier', 'turbo'])
    assert info.value.code == 2
