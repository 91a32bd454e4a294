# tateti/config.py
from dataclasses import dataclass, field
import os
import tomllib

DEFAULT_PORT = 9999
CONFIG_FILE = "tateti.toml"


@dataclass
class NetworkConfig:
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    connect_timeout: float = 10.0  # seconds, client connect only


@dataclass
class Settings:
    network: NetworkConfig = field(default_factory=NetworkConfig)
    log_level: str = "INFO"
    log_format: str = "simple"

    @staticmethod
    def load_from_toml(path: str = CONFIG_FILE) -> "Settings":
        cfg = Settings()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            data = tomllib.load(f)

        net = data.get("network", {})
        if "host" in net:
            cfg.network.host = str(net["host"])
        if "port" in net:
            cfg.network.port = int(net["port"])
        if "connect_timeout" in net:
            cfg.network.connect_timeout = float(net["connect_timeout"])

        log = data.get("logging", {})
        cfg.log_level = str(log.get("level", cfg.log_level))
        cfg.log_format = str(log.get("format", cfg.log_format))
        return cfg

    def apply_env(self, environ=None) -> "Settings":
        """
        override from TATETI_HOST / TATETI_PORT / TATETI_LOG_LEVEL
        """
        env = os.environ if environ is None else environ
        if env.get("TATETI_HOST"):
            self.network.host = env["TATETI_HOST"]
        if env.get("TATETI_PORT"):
            try:
                self.network.port = int(env["TATETI_PORT"])
            except ValueError:
                raise ValueError(f"TATETI_PORT must be an integer, got {env['TATETI_PORT']!r}") from None
        if env.get("TATETI_LOG_LEVEL"):
            self.log_level = env["TATETI_LOG_LEVEL"]
        return self


def load_settings(path: str = CONFIG_FILE, environ=None) -> Settings:
    return Settings.load_from_toml(path).apply_env(environ)
