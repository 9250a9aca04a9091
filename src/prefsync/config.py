from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "PREFSYNC_"}

    # Share codec
    pack_id: str = "sp-v1"
    starter_pack_path: str = ""  # empty -> bundled starter pack
    share_base_url: str = "http://localhost/"

    # Merge
    notes_separator: str = "— Imported —"

    # Library tools
    library_src_dir: str = "politician-pref-sets/politician-json"
    library_index_path: str = "politician-pref-sets/library.index.json"
    library_out_dir: str = "politician-pref-sets/politician-json"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"
