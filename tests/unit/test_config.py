"""
配置系统单元测试

测试配置模型验证、引用一致性检查、加载器功能和相对路径解析。
"""

import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError
from ruamel.yaml import YAML

from wixfrag.config.loader import ConfigError, ConfigLoader, ConfigValidationError, load_config, validate_config
from wixfrag.config.schema import (
    Architecture,
    FileAssociationModel,
    FragmentConfig,
    InstallModel,
    LauncherModel,
    LayoutModel,
    ProductModel,
)


def minimal_data(**overrides):
    data = {
        "product": {"name": "Demo", "vendor": "Acme", "version": "1.0.0"},
        "app_image": "image",
    }
    data.update(overrides)
    return data


class TestProductModel:
    """ProductModel 测试"""

    def test_valid_product_model(self):
        product = ProductModel(name="Demo", vendor="Acme", version="1.2.3", description="d")
        assert product.name == "Demo"
        assert product.vendor == "Acme"

    def test_version_validation(self):
        """测试版本号验证"""
        for version in ["1.0", "1.0.0", "25.9.25.1"]:
            assert ProductModel(name="Demo", vendor="Acme", version=version).version == version

        for version in ["invalid", "1", "1.0.0.0.0", "v1.0.0", "1.0.0-beta"]:
            with pytest.raises(ValidationError):
                ProductModel(name="Demo", vendor="Acme", version=version)


class TestInstallModel:
    """InstallModel 测试"""

    def test_defaults(self):
        install = InstallModel()
        assert install.system_wide
        assert install.install_dir is None
        assert install.arch == Architecture.X64

    def test_install_dir_normalized(self):
        """测试安装目录统一为反斜杠并去掉首尾分隔符"""
        assert InstallModel(install_dir="/Acme/Demo/").install_dir == "Acme\\Demo"

    @pytest.mark.parametrize("install_dir", ["C:\\Demo", "..\\Demo", "\\\\"])
    def test_invalid_install_dir(self, install_dir):
        with pytest.raises(ValidationError):
            InstallModel(install_dir=install_dir)


class TestLayoutAndLaunchers:
    """布局、启动器与文件关联模型测试"""

    def test_layout_defaults(self):
        layout = LayoutModel()
        assert layout.launchers == ""
        assert layout.app == "app"
        assert layout.runtime == "runtime"

    def test_layout_rejects_parent_reference(self):
        with pytest.raises(ValidationError):
            LayoutModel(app="../outside")

    def test_launcher_name_validation(self):
        assert LauncherModel(name=" App ").name == "App"
        with pytest.raises(ValidationError):
            LauncherModel(name="bad/name")

    def test_extensions_strip_dot(self):
        """测试扩展名去掉前导点，空扩展名保留给后续过滤"""
        fa = FileAssociationModel(launcher="App", extensions=[".txt", " log ", ""])
        assert fa.extensions == ["txt", "log", ""]


class TestFragmentConfig:
    """FragmentConfig 测试"""

    def test_minimal_valid_config(self):
        config = FragmentConfig.from_dict(minimal_data())
        assert config.product.name == "Demo"
        assert config.wix.version == "3.14"
        assert config.launchers == []
        assert not config.shortcuts.desktop

    def test_derived_values(self):
        config = FragmentConfig.from_dict(minimal_data())
        assert config.get_install_dir() == "Demo"
        assert config.get_menu_group() == "Acme"
        assert config.get_registry_key_path() == "Software\\Acme\\Demo\\1.0.0"

    def test_explicit_install_dir_and_menu_group(self):
        config = FragmentConfig.from_dict(minimal_data(
            install={"install_dir": "Acme\\Demo", "menu_group": "Acme Tools"}
        ))
        assert config.get_install_dir() == "Acme\\Demo"
        assert config.get_menu_group() == "Acme Tools"

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            FragmentConfig.from_dict(minimal_data(unknown=True))

    def test_duplicate_launchers(self):
        with pytest.raises(ValidationError) as exc_info:
            FragmentConfig.from_dict(minimal_data(launchers=[{"name": "App"}, {"name": "App"}]))
        assert "启动器名称重复" in str(exc_info.value)

    def test_association_unknown_launcher(self):
        with pytest.raises(ValidationError) as exc_info:
            FragmentConfig.from_dict(minimal_data(
                launchers=[{"name": "App"}],
                file_associations=[{"launcher": "Viewer", "extensions": ["txt"]}],
            ))
        assert "不存在的启动器" in str(exc_info.value)

    def test_service_requires_installer(self):
        with pytest.raises(ValidationError) as exc_info:
            FragmentConfig.from_dict(minimal_data(launchers=[{"name": "Agent", "service": True}]))
        assert "service_installer" in str(exc_info.value)

    def test_to_dict_roundtrip(self):
        config = FragmentConfig.from_dict(minimal_data(
            install={"arch": "x86"},
            launchers=[{"name": "App"}],
        ))
        data = config.to_dict()

        assert data["install"]["arch"] == "x86"
        assert isinstance(data["app_image"], str)
        assert FragmentConfig.from_dict(data) == config


class TestConfigLoader:
    """ConfigLoader 测试"""

    def write_yaml(self, directory, data, name="wixfrag.yaml"):
        path = Path(directory) / name
        with open(path, 'w', encoding='utf-8') as f:
            YAML().dump(data, f)
        return path

    def test_load_from_file_resolves_paths(self):
        """测试相对路径以配置文件所在目录为基准"""
        data = minimal_data(
            launchers=[{"name": "Agent", "service": True}],
            service_installer={"source": "tools/winsw.exe"},
            file_associations=[{"launcher": "Agent", "extensions": ["txt"], "icon": "icons/doc.ico"}],
        )
        with tempfile.TemporaryDirectory() as temp_dir:
            base = Path(temp_dir).resolve()
            config = ConfigLoader().load_from_file(self.write_yaml(temp_dir, data))

            assert Path(config.app_image) == base / "image"
            assert Path(config.service_installer.source) == base / "tools" / "winsw.exe"
            assert Path(config.file_associations[0].icon) == base / "icons" / "doc.ico"

    def test_load_from_file_invalid_path(self):
        with pytest.raises(ConfigError) as exc_info:
            ConfigLoader().load_from_file("nonexistent.yaml")
        assert "配置文件不存在" in str(exc_info.value)

    def test_load_from_file_invalid_extension(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "config.txt"
            path.write_text("product: {}", encoding='utf-8')
            with pytest.raises(ConfigError) as exc_info:
                ConfigLoader().load_from_file(path)
            assert "配置文件必须是 .yaml 或 .yml 格式" in str(exc_info.value)

    def test_load_from_file_invalid_yaml(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "bad.yaml"
            path.write_text("invalid: yaml: content: [\n", encoding='utf-8')
            with pytest.raises(ConfigError) as exc_info:
                ConfigLoader().load_from_file(path)
            assert "YAML 解析错误" in str(exc_info.value)

    def test_load_from_file_empty(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "empty.yaml"
            path.write_text("", encoding='utf-8')
            with pytest.raises(ConfigError) as exc_info:
                ConfigLoader().load_from_file(path)
            assert "配置文件为空" in str(exc_info.value)

    def test_load_from_dict_validation_error(self):
        """测试验证错误带有可格式化的错误列表"""
        with pytest.raises(ConfigValidationError) as exc_info:
            ConfigLoader().load_from_dict({"product": {"name": "Demo"}})

        errors = exc_info.value.errors
        assert errors
        assert "product" in exc_info.value.format_errors()
        assert exc_info.value.format_errors_json().startswith("[")

    def test_load_from_dict_with_base_path(self):
        data = minimal_data()
        config = ConfigLoader().load_from_dict(data, base_path=Path("/work"))
        assert Path(config.app_image).is_absolute()
        assert data["app_image"] == "image"

    def test_save_and_reload(self):
        config = FragmentConfig.from_dict(minimal_data(shortcuts={"desktop": True}))
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "saved.yaml"
            ConfigLoader().save_to_file(config, path)
            reloaded = load_config(path)
            assert reloaded.shortcuts.desktop
            assert reloaded.product == config.product

    def test_validate_config(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            valid = self.write_yaml(temp_dir, minimal_data())
            invalid = self.write_yaml(temp_dir, {"product": {"name": "Demo"}}, name="bad.yaml")

            assert validate_config(valid) == []
            assert validate_config(invalid)
            assert validate_config(Path(temp_dir) / "missing.yaml")[0]['type'] == 'config_error'
