"""
Smoke tests for configuration loading and validation.
"""

import pytest

from main import apply_overrides, load_config, parse_args, validate_config
from models.config import Config, PoolConfig


class TestValidateConfig:
    """Tests for validate_config function."""

    def test_valid_config_passes(self, valid_config):
        """A complete valid config passes validation."""
        is_valid, error = validate_config(valid_config)

        assert is_valid is True
        assert error is None

    @pytest.mark.parametrize("section", ["stream", "model", "log_path", "log_level"])
    def test_missing_required_section(self, valid_config, section):
        del valid_config[section]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert section in error

    def test_optional_sections_may_be_missing(self, valid_config):
        for section in ("redis", "detection", "pool", "retry"):
            del valid_config[section]

        is_valid, _ = validate_config(valid_config)

        assert is_valid is True

    def test_invalid_redis_port(self, valid_config):
        valid_config["redis"]["port"] = "6379"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "redis.port" in error

    def test_empty_stream_name(self, valid_config):
        valid_config["stream"]["name"] = ""

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "stream.name" in error

    def test_missing_group(self, valid_config):
        del valid_config["stream"]["group"]

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "stream.group" in error

    def test_zero_block_ms_is_valid(self, valid_config):
        """block_ms 0 means block until a message arrives."""
        valid_config["stream"]["block_ms"] = 0

        is_valid, _ = validate_config(valid_config)

        assert is_valid is True

    def test_negative_block_ms(self, valid_config):
        valid_config["stream"]["block_ms"] = -1

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "block_ms" in error

    def test_negative_max_deliveries(self, valid_config):
        valid_config["stream"]["max_deliveries"] = -1

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "max_deliveries" in error

    def test_invalid_read_count(self, valid_config):
        valid_config["stream"]["read_count"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "read_count" in error

    def test_missing_model_path(self, valid_config):
        valid_config["model"] = {}

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "model.path" in error

    @pytest.mark.parametrize("key", ["prob_threshold", "iou_threshold"])
    def test_threshold_out_of_range(self, valid_config, key):
        valid_config["detection"][key] = 1.5

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert key in error

    def test_boolean_threshold_rejected(self, valid_config):
        valid_config["detection"]["prob_threshold"] = True

        is_valid, _ = validate_config(valid_config)

        assert is_valid is False

    def test_negative_consumers(self, valid_config):
        valid_config["pool"]["num_consumers"] = -1

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "num_consumers" in error

    def test_zero_capacity(self, valid_config):
        valid_config["pool"]["consumer_capacity"] = 0

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "consumer_capacity" in error

    def test_invalid_jitter(self, valid_config):
        valid_config["retry"]["jitter"] = 2

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "jitter" in error

    def test_invalid_log_level(self, valid_config):
        valid_config["log_level"] = "VERBOSE"

        is_valid, error = validate_config(valid_config)

        assert is_valid is False
        assert "log_level" in error


class TestLoadConfig:
    """Tests for load_config function."""

    def test_loads_default_yaml(self, temp_config_dir):
        """Config loads from default.yaml when only it exists."""
        config_path = str(temp_config_dir / "config.yaml")

        config = load_config(config_path)

        assert config["stream"]["name"] == "camera_stream"
        assert config["pool"]["num_consumers"] == 30

    def test_local_overrides_merge(self, temp_config_dir):
        """Local config.yaml overrides default.yaml."""
        config_yaml = temp_config_dir / "config.yaml"
        config_yaml.write_text("""
stream:
  block_ms: 500
""")

        config = load_config(str(config_yaml))

        assert config["stream"]["block_ms"] == 500
        assert config["stream"]["group"] == "camera_group"

    def test_explicit_config_applied_last(self, temp_config_dir):
        (temp_config_dir / "config.yaml").write_text("""
pool:
  num_consumers: 4
""")
        explicit = temp_config_dir / "bench.yaml"
        explicit.write_text("""
pool:
  num_consumers: 8
""")

        config = load_config(str(explicit))

        assert config["pool"]["num_consumers"] == 8
        assert config["pool"]["num_publishers"] == 20

    def test_invalid_yaml_exits(self, temp_config_dir):
        config_yaml = temp_config_dir / "config.yaml"
        config_yaml.write_text("stream: [unclosed")

        with pytest.raises(SystemExit):
            load_config(str(config_yaml))

    def test_loaded_config_is_valid(self, temp_config_dir):
        config = load_config(str(temp_config_dir / "config.yaml"))

        is_valid, error = validate_config(config)

        assert is_valid is True, error


class TestOverrides:
    def test_cli_overrides_pool(self, valid_config):
        args = parse_args(["--publishers", "2", "--consumers", "3", "--frame-reference", "truck.png"])

        config = apply_overrides(valid_config, args)

        assert config["pool"]["num_publishers"] == 2
        assert config["pool"]["num_consumers"] == 3
        assert config["pool"]["frame_reference"] == "truck.png"
        assert config["pool"]["frames_per_publisher"] == 5

    def test_defaults(self):
        args = parse_args([])

        assert args.config == "config/config.yaml"
        assert args.no_publish is False
        assert args.publishers is None


class TestTypedConfig:
    def test_defaults_from_empty_dict(self):
        cfg = Config.from_dict({})

        assert cfg.stream.name == "camera_stream"
        assert cfg.stream.group == "camera_group"
        assert cfg.stream.block_ms == 2000
        assert cfg.stream.max_deliveries == 5
        assert cfg.detection.prob_threshold == 0.5
        assert cfg.detection.iou_threshold == 0.7
        assert cfg.pool.num_publishers == 20
        assert cfg.pool.num_consumers == 30

    def test_round_trip(self, valid_config):
        cfg = Config.from_dict(valid_config)

        assert Config.from_dict(cfg.to_dict()) == cfg

    def test_capacity_defaults_to_worker_count(self):
        pool = PoolConfig(num_publishers=3, num_consumers=0)

        assert pool.effective_publisher_capacity == 3
        assert pool.effective_consumer_capacity == 1
        assert PoolConfig(consumer_capacity=2).effective_consumer_capacity == 2
