"""Tests for report export and the command line entry point."""

import sys
import os
import json
import pytest
import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from placement_advisor.advisor import analyze
from placement_advisor.main import main, parse_args
from placement_advisor.utils.reporting import (
    EXTENDER_COLUMNS, ROOM_COLUMNS, convert_numpy_types, extenders_to_dataframe,
    heatmap_to_dataframe, report_to_dict, rooms_to_dataframe, save_report
)


class TestReporting:
    """Test tabular and JSON export."""

    def test_convert_numpy_types(self):
        """Test numpy scalars and arrays become plain Python."""
        converted = convert_numpy_types({'a': np.float64(0.5), 'b': (np.int64(2), np.array([1, 2])),
                                         'c': np.bool_(True)})
        assert converted == {'a': 0.5, 'b': [2, [1, 2]], 'c': True}
        assert type(converted['a']) is float

    def test_rooms_dataframe(self, three_room_store):
        """Test one row per room in walk order."""
        df = rooms_to_dataframe(analyze(three_room_store))
        assert list(df.columns) == ROOM_COLUMNS
        assert list(df['name']) == ['Living Room', 'Bedroom', 'Kitchen']
        assert df['is_estimated'].all()

    def test_extenders_dataframe(self, three_room_store):
        """Test one row per extender."""
        df = extenders_to_dataframe(analyze(three_room_store))
        assert list(df.columns) == EXTENDER_COLUMNS
        assert df.iloc[0]['target_room'] == 'Bedroom'
        assert df.iloc[0]['placement_room'] == 'Living Room'

    def test_empty_report_exports(self):
        """Test an empty walk still exports cleanly."""
        report = analyze([])
        assert rooms_to_dataframe(report).empty
        assert extenders_to_dataframe(report).empty
        data = report_to_dict(report)
        assert data['router'] is None
        json.dumps(data)

    def test_report_to_dict(self, two_floor_points):
        """Test the JSON view is serializable and complete."""
        data = report_to_dict(analyze(two_floor_points))
        text = json.dumps(data)
        assert 'Living Room' in text
        assert data['router']['floor'] == 1
        assert set(data['coverage_by_floor']) == {'1', '2'}
        assert data['health']['label'] in ('Excellent', 'Good', 'Needs Attention')
        assert len(data['extenders']) == 2

    def test_heatmap_dataframe(self, three_room_store):
        """Test long-form heatmap rows."""
        heatmap = analyze(three_room_store).surface.heatmap(1, resolution=1.0, bounds=(0.0, 0.0, 1.0, 2.0))
        df = heatmap_to_dataframe(heatmap)
        assert len(df) == 6
        assert set(df.columns) == {'floor', 'x', 'y', 'signal'}

    def test_save_report(self, tmp_path, two_floor_points):
        """Test every artifact lands on disk."""
        paths = save_report(analyze(two_floor_points), str(tmp_path / 'out'), heatmap_resolution=2.0)
        assert set(paths) == {'report', 'rooms', 'extenders', 'heatmap_floor_1', 'heatmap_floor_2'}
        for path in paths.values():
            assert os.path.exists(path)
        with open(paths['report']) as f:
            assert json.load(f)['coverage']['total_rooms'] == 6


class TestCommandLine:
    """Test the CLI front end."""

    @pytest.fixture
    def walk_file(self, tmp_path, sample_records):
        path = tmp_path / 'walk.json'
        path.write_text(json.dumps(sample_records))
        return str(path)

    def test_parse_args(self):
        """Test defaults and choices."""
        args = parse_args(['--samples', 'walk.json'])
        assert args.output_dir == 'runs'
        assert args.router_mode is None
        assert args.heatmap_resolution is None
        with pytest.raises(SystemExit):
            parse_args(['--samples', 'walk.json', '--router-mode', 'everywhere'])
        with pytest.raises(SystemExit):
            parse_args([])

    def test_main(self, tmp_path, walk_file, capsys):
        """Test a full run writes a run folder and prints a summary."""
        out = tmp_path / 'runs'
        code = main(['--samples', walk_file, '--output-dir', str(out), '--router-mode', 'per_floor',
                     '--heatmap-resolution', '2.0'])
        assert code == 0
        run_dirs = os.listdir(out)
        assert len(run_dirs) == 1 and run_dirs[0].startswith('run_')
        files = set(os.listdir(out / run_dirs[0]))
        assert {'report.json', 'rooms.csv', 'extenders.csv', 'heatmap_floor_1.csv'} <= files
        printed = capsys.readouterr().out
        assert 'WiFi Coverage Analysis' in printed
        assert 'Bedroom' in printed

    def test_main_missing_samples(self, tmp_path):
        """Test a missing samples file fails with exit code 1."""
        assert main(['--samples', str(tmp_path / 'none.json'), '--output-dir', str(tmp_path)]) == 1

    def test_main_bad_config(self, tmp_path, walk_file):
        """Test an invalid config fails with exit code 1."""
        config = tmp_path / 'config.json'
        config.write_text(json.dumps({'weak_threshold': 2.0}))
        assert main(['--samples', walk_file, '--config', str(config), '--output-dir', str(tmp_path)]) == 1
