#!/usr/bin/env python3
"""Configuration validation script."""

import sys
from pathlib import Path
from typing import List

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from feewatch.config.loader import ConfigLoader
from feewatch.config.validation import ConfigValidator, ValidationError
from feewatch.errors import ConfigurationError


def validate_config_dir(config_dir: Path) -> List[ValidationError]:
    """Validate the merged configuration for a config directory."""
    loader = ConfigLoader.create(config_dir)
    config = loader.merge_config()
    return ConfigValidator.validate_config(config)


def main():
    """Main validation function."""
    config_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else project_root / "config"
    print(f"🔍 Validating FeeWatch configuration in {config_dir}...")

    all_valid = True

    try:
        errors = validate_config_dir(config_dir)

        if errors:
            print(f"❌ Found {len(errors)} validation errors:")
            for error in errors:
                print(f"  • {error.field}: {error.message} (value: {error.value})")
            all_valid = False
        else:
            print("✅ Configuration is valid")

    except ConfigurationError as e:
        print(f"❌ Error loading configuration: {e}")
        all_valid = False

    # Check every configured endpoint can be selected
    print("\n📋 Testing endpoint overrides...")
    loader = ConfigLoader.create(config_dir)
    try:
        endpoints = loader.merge_config()["fetch"]["endpoints"]
        for name in endpoints:
            loader.load({"fetch": {"default_endpoint": name}})
            print(f"✅ {name}")
    except ConfigurationError as e:
        print(f"❌ Endpoint override failed: {e}")
        all_valid = False

    if all_valid:
        print("\n🎉 All configuration validation passed!")
        sys.exit(0)
    else:
        print("\n❌ Configuration validation failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
