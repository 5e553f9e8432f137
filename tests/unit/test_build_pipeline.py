"""
生成管道单元测试

测试生成管道、生成步骤、生成上下文和 Builder 端到端生成。
"""

import xml.etree.ElementTree as ET
from unittest.mock import MagicMock

import pytest

from wixfrag.build.build_context import BuildContext, BuildError
from wixfrag.build.build_pipeline import BuildPipeline
from wixfrag.build.builder import Builder
from wixfrag.build.fragment import FILES_GROUP, SHORTCUTS_GROUP
from wixfrag.build.identifiers import INSTALLDIR, Role, identifier
from wixfrag.build.steps.build_step import BuildStep
from wixfrag.build.toolset import UnsupportedToolsetError
from wixfrag.config.schema import FragmentConfig


class MockBuildStep(BuildStep):
    """模拟生成步骤"""

    def __init__(self, name="mock", progress_range=(0, 10), fail=False):
        super().__init__(name, "Mock step")
        self._progress_range = progress_range
        self._fail = fail
        self.execute_called = False

    def get_progress_range(self):
        return self._progress_range

    def execute(self, context):
        self.execute_called = True
        if self._fail:
            raise BuildError("模拟失败")
        context.build_stats['mock_processed'] = True


@pytest.fixture
def app_image(tmp_path):
    root = tmp_path / "image"
    (root / "app").mkdir(parents=True)
    (root / "runtime" / "legal").mkdir(parents=True)
    (root / "App.exe").write_bytes(b"MZ")
    (root / "App.ico").write_bytes(b"\x00\x00\x01\x00")
    (root / "app" / "main.jar").write_bytes(b"PK")
    (root / "app" / "debug.log").write_text("log")
    return root


def make_config(app_image, **overrides):
    data = {
        "product": {"name": "Demo", "vendor": "Acme", "version": "1.0"},
        "app_image": str(app_image),
        "shortcuts": {"start_menu": True, "desktop": True},
        "launchers": [{"name": "App"}],
        "exclude": ["*.log"],
    }
    data.update(overrides)
    return FragmentConfig.from_dict(data)


class TestBuildContext:
    """BuildContext 测试"""

    def test_init(self, tmp_path):
        context = BuildContext(config=MagicMock(), output_path=tmp_path / "out.wxs")

        assert context.toolset is None
        assert context.fragment is None
        assert context.launchers == []
        assert context.build_stats['total_files'] == 0
        assert context.build_stats['total_components'] == 0

    def test_report_progress(self, tmp_path):
        callback = MagicMock()
        context = BuildContext(config=MagicMock(), output_path=tmp_path / "out.wxs", progress_callback=callback)

        context.report_progress("解析布局", 25, "完成")
        callback.assert_called_once_with("解析布局", 25, 100, "完成")

    def test_report_progress_without_callback(self, tmp_path):
        context = BuildContext(config=MagicMock(), output_path=tmp_path / "out.wxs")
        context.report_progress("解析布局", 25)


class TestBuildPipeline:
    """BuildPipeline 测试"""

    def test_default_steps(self):
        pipeline = BuildPipeline()
        assert [step.name for step in pipeline.get_steps()] == ["layout", "directories", "fragment", "write"]
        assert pipeline.validate_pipeline() == []

    def test_add_and_remove_step(self):
        pipeline = BuildPipeline()
        step = MockBuildStep()

        pipeline.add_step(step, position=0)
        assert pipeline.get_steps()[0] is step

        pipeline.remove_step("mock")
        assert step not in pipeline.get_steps()

    def test_validate_gaps(self):
        """测试进度范围不连续或不到 100%"""
        pipeline = BuildPipeline()
        for step in pipeline.get_steps():
            pipeline.remove_step(step.name)
        assert pipeline.validate_pipeline() == ["生成管道中没有步骤"]

        pipeline.add_step(MockBuildStep("a", (0, 40)))
        pipeline.add_step(MockBuildStep("b", (50, 50)))
        errors = pipeline.validate_pipeline()

        assert any("不连续" in e for e in errors)
        assert any("无效" in e for e in errors)
        assert any("100%" in e for e in errors)

    def test_execute_custom_steps(self, tmp_path):
        pipeline = BuildPipeline()
        for step in pipeline.get_steps():
            pipeline.remove_step(step.name)
        step = MockBuildStep(progress_range=(0, 100))
        pipeline.add_step(step)

        context = pipeline.execute(MagicMock(), tmp_path / "out.wxs")

        assert step.execute_called
        assert context.build_stats['mock_processed']
        assert context.build_stats['end_time'] >= context.build_stats['start_time']

    def test_execute_wraps_failure(self, tmp_path):
        pipeline = BuildPipeline()
        for step in pipeline.get_steps():
            pipeline.remove_step(step.name)
        pipeline.add_step(MockBuildStep(progress_range=(0, 100), fail=True))

        with pytest.raises(BuildError) as exc_info:
            pipeline.execute(MagicMock(), tmp_path / "out.wxs")
        assert "生成失败" in str(exc_info.value)


class TestBuilder:
    """Builder 端到端测试"""

    def test_generate(self, app_image, tmp_path):
        output = tmp_path / "out" / "app.wxs"
        progress = []

        result = Builder().generate(
            make_config(app_image), output, lambda stage, current, total, msg: progress.append(current)
        )

        assert result.success, result.error
        assert result.output_path == output
        assert result.output_size and result.output_size > 0
        assert result.stats['total_files'] == 3
        assert result.stats['empty_directories'] == 1
        assert progress[0] == 0
        assert progress[-1] == 100

        fragment = result.fragment
        files = {c.path for c in fragment.group_components(FILES_GROUP) if c.role is Role.FILE}
        assert files == {INSTALLDIR / "App.exe", INSTALLDIR / "App.ico", INSTALLDIR / "app" / "main.jar"}
        assert len(fragment.group(SHORTCUTS_GROUP)) == 2
        assert ET.parse(output).getroot().tag.endswith("Wix")

    def test_generate_is_deterministic(self, app_image, tmp_path):
        """测试相同输入生成字节一致的输出"""
        first = tmp_path / "first.wxs"
        second = tmp_path / "second.wxs"

        assert Builder().generate(make_config(app_image), first).success
        assert Builder().generate(make_config(app_image), second).success
        assert first.read_bytes() == second.read_bytes()

    def test_file_association_icon(self, app_image, tmp_path):
        """测试文件关联图标作为额外文件安装并声明为图标"""
        icon = tmp_path / "doc.ico"
        icon.write_bytes(b"\x00")
        config = make_config(app_image, file_associations=[
            {"launcher": "App", "extensions": ["txt"], "icon": str(icon), "mime_types": ["text/plain"]},
        ])

        result = Builder().generate(config, tmp_path / "app.wxs")

        assert result.success, result.error
        icon_path = INSTALLDIR / "fa_txt.ico"
        assert "c" + identifier(icon_path, Role.FILE) in result.fragment.group(FILES_GROUP)
        assert icon_path in {declaration.path for declaration in result.fragment.icons}

    def test_service_launcher(self, app_image, tmp_path):
        installer = tmp_path / "winsw.exe"
        installer.write_bytes(b"MZ")
        (app_image / "Agent.exe").write_bytes(b"MZ")
        config = make_config(
            app_image,
            launchers=[{"name": "App"}, {"name": "Agent", "service": True, "menu": False, "shortcut": False}],
            service_installer={"source": str(installer), "install_name": "Agent-service.exe"},
        )

        result = Builder().generate(config, tmp_path / "app.wxs")

        assert result.success, result.error
        component = result.fragment.component("c" + identifier(INSTALLDIR / "Agent-service.exe", Role.FILE))
        assert [entry.name for entry in component.payload.services] == ["Agent"]

    def test_unsupported_toolset(self, app_image, tmp_path):
        """测试不支持的工具集版本在遍历文件之前失败"""
        output = tmp_path / "app.wxs"
        result = Builder().generate(make_config(app_image, wix={"version": "2.0"}), output)

        assert not result.success
        assert "不支持的 WiX 版本" in result.error
        assert isinstance(result.error, str)
        assert not output.exists()

    def test_missing_app_image(self, tmp_path):
        result = Builder().generate(make_config(tmp_path / "missing"), tmp_path / "app.wxs")
        assert not result.success
        assert "应用镜像目录不存在" in result.error

    def test_validate_build_pipeline(self):
        assert Builder().validate_build_pipeline() == []


def test_unsupported_toolset_is_build_error():
    assert issubclass(UnsupportedToolsetError, BuildError)
