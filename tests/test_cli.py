"""
Tests for the tpsim command line.
"""

from unittest.mock import patch

import pytest

from tpsim.capture import ScenarioOutcome
from tpsim.cli import main
from tpsim.common import JsonBody, Pair, Request, Response, Simulation, load_simulation, save_simulation

DOMAIN = "acme.tpondemand.com"


def write_fixture(path, *pairs):
    save_simulation(path, Simulation(pairs=list(pairs)))
    return path


def pair(path='/api/v2/UserStory', query=None, status=200, body=None):
    return Pair(
        request=Request('GET', path, query or {}),
        response=Response(status, {}, JsonBody(body if body is not None else {}))
    )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv('TP_DOMAIN', raising=False)
    monkeypatch.delenv('TP_TOKEN', raising=False)


class TestValidate:
    """Tests for the validate command."""

    def test_clean_fixture_passes(self, tmp_path, capsys):
        path = write_fixture(tmp_path / 'sim.json', pair())

        main(['validate', str(path)])

        out = capsys.readouterr().out
        assert 'Total pairs: 1' in out
        assert 'All validations passed' in out

    def test_leaked_domain_is_an_error(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv('TP_DOMAIN', DOMAIN)
        path = write_fixture(tmp_path / 'sim.json', pair(body={'Next': f'https://{DOMAIN}/x'}))

        with pytest.raises(SystemExit) as exc_info:
            main(['validate', str(path)])

        assert exc_info.value.code == 1
        assert f'live domain {DOMAIN}' in capsys.readouterr().out

    def test_shadowed_and_error_pairs_are_warnings(self, tmp_path, capsys):
        path = write_fixture(
            tmp_path / 'sim.json',
            pair(),
            pair(query={'take': '3'}),
            pair(path='/api/v1/Bugs/1', status=404),
        )

        main(['validate', str(path), '--verbose'])

        out = capsys.readouterr().out
        assert 'Pair 1 is unreachable: pair 0 always matches first' in out
        assert '1 pairs have error status codes' in out
        assert '[1] GET /api/v2/UserStory?take=3 -> 200' in out

    def test_unloadable_fixture(self, tmp_path, capsys):
        bad = tmp_path / 'bad.json'
        bad.write_text('nope', encoding='utf-8')

        with pytest.raises(SystemExit) as exc_info:
            main(['validate', str(bad)])

        assert exc_info.value.code == 1
        assert 'Failed to load fixtures' in capsys.readouterr().out


class TestRedact:
    """Tests for the redact command."""

    def test_redacts_file(self, tmp_path, capsys):
        raw = write_fixture(
            tmp_path / 'raw.json',
            pair(query={'access_token': 'abc'}, body={'ResourceType': 'Project', 'Name': 'Apollo',
                                                      'Link': f'https://{DOMAIN}/p/1'})
        )
        out_path = tmp_path / 'clean' / 'sim.json'

        main(['redact', str(raw), str(out_path), '--domain', DOMAIN])

        clean = load_simulation(out_path).pairs[0]
        assert clean.request.query == {'access_token': 'REDACTED'}
        assert clean.response.body.value == {
            'ResourceType': 'Project', 'Name': 'Test Project 1', 'Link': 'https://test.tpondemand.com/p/1'
        }
        assert 'Redacted 1 pairs' in capsys.readouterr().out

    def test_domain_required(self, tmp_path):
        raw = write_fixture(tmp_path / 'raw.json', pair())

        with pytest.raises(SystemExit):
            main(['redact', str(raw), str(tmp_path / 'out.json')])


class TestCapture:
    """Tests for the capture command."""

    def test_missing_credentials(self, tmp_path, capsys):
        scenarios = tmp_path / 'scenarios.yaml'
        scenarios.write_text("- name: x\n  requests: []\n", encoding='utf-8')

        with pytest.raises(SystemExit) as exc_info:
            main(['capture', str(scenarios)])

        assert exc_info.value.code == 1
        assert 'TP_DOMAIN' in capsys.readouterr().out

    def test_reports_outcomes(self, tmp_path, capsys, monkeypatch):
        monkeypatch.setenv('TP_DOMAIN', DOMAIN)
        monkeypatch.setenv('TP_TOKEN', 'secret')
        scenarios = tmp_path / 'scenarios.yaml'
        scenarios.write_text(
            "- name: good\n  requests: []\n"
            "- name: bad\n  requests: []\n",
            encoding='utf-8'
        )

        with patch('tpsim.cli.ScenarioRunner') as runner_cls:
            runner_cls.return_value.run.side_effect = [
                ScenarioOutcome(name='good', pairs=2, path=tmp_path / 'good.json'),
                ScenarioOutcome(name='bad', error='500 Server Error'),
            ]

            with pytest.raises(SystemExit) as exc_info:
                main(['capture', str(scenarios), '--output', str(tmp_path)])

        out = capsys.readouterr().out
        assert exc_info.value.code == 1
        assert 'Capturing good... OK (2 pairs)' in out
        assert 'Capturing bad... FAILED: 500 Server Error' in out
        config = runner_cls.call_args[0][0]
        assert config.domain == DOMAIN
        assert config.output_dir == str(tmp_path)


def test_no_command_prints_help(capsys):
    with pytest.raises(SystemExit):
        main([])

    assert 'usage' in capsys.readouterr().out
