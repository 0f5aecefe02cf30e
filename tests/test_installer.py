"""Tests for plugship.installer -- overwrite semantics and failure reporting."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from plugship.bundler import bundle
from plugship.exceptions import InstallFailed
from plugship.exit_codes import EXIT_INSTALL_FAILURE
from plugship.installer import install, installed_path
from plugship.models import (
    Artifact,
    Bundle,
    BundleFormat,
    BundleOptions,
    BundleSpec,
    InstallTarget,
)


@pytest.fixture
def demo_bundle(tmp_path: Path, artifact_file: Artifact) -> Bundle:
    """A real ``Demo.vst3`` bundle under tmp_path/bundles."""
    spec = BundleSpec(source_artifact=artifact_file, product_name="Demo")
    options = BundleOptions(format=BundleFormat.VST3, output_dir=tmp_path / "bundles")
    return bundle(spec, options)


@pytest.fixture
def plugin_root(tmp_path: Path) -> InstallTarget:
    return InstallTarget(destination_root=tmp_path / "Plug-Ins" / "VST3")


class TestInstall:
    def test_copies_bundle_into_root(
        self, demo_bundle: Bundle, plugin_root: InstallTarget, snapshot
    ) -> None:
        dest = install(demo_bundle, plugin_root)

        assert dest == plugin_root.destination_root / "Demo.vst3"
        assert dest == installed_path(demo_bundle, plugin_root)
        assert snapshot(dest) == snapshot(demo_bundle.root_path)

    def test_creates_missing_root(self, demo_bundle: Bundle, tmp_path: Path) -> None:
        target = InstallTarget(destination_root=tmp_path / "a" / "b" / "c")
        assert install(demo_bundle, target).is_dir()

    def test_install_twice_is_idempotent(
        self, demo_bundle: Bundle, plugin_root: InstallTarget, snapshot
    ) -> None:
        first = snapshot(install(demo_bundle, plugin_root))
        second = snapshot(install(demo_bundle, plugin_root))
        assert first == second

    def test_replaces_previous_install(
        self, demo_bundle: Bundle, plugin_root: InstallTarget
    ) -> None:
        old = plugin_root.destination_root / "Demo.vst3" / "Contents" / "MacOS" / "Old"
        old.parent.mkdir(parents=True)
        old.write_bytes(b"previous version")

        dest = install(demo_bundle, plugin_root)

        assert not old.exists()
        assert (dest / "Contents" / "MacOS" / "Demo").is_file()

    def test_replaces_stray_file(self, demo_bundle: Bundle, plugin_root: InstallTarget) -> None:
        plugin_root.destination_root.mkdir(parents=True)
        stray = plugin_root.destination_root / "Demo.vst3"
        stray.write_text("not a bundle")

        dest = install(demo_bundle, plugin_root)

        assert dest.is_dir()

    def test_leaves_other_plugins_alone(
        self, demo_bundle: Bundle, plugin_root: InstallTarget
    ) -> None:
        other = plugin_root.destination_root / "Other.vst3" / "Contents" / "Info.plist"
        other.parent.mkdir(parents=True)
        other.write_text("other")

        install(demo_bundle, plugin_root)

        assert other.read_text() == "other"

    def test_source_bundle_unchanged(
        self, demo_bundle: Bundle, plugin_root: InstallTarget, snapshot
    ) -> None:
        before = snapshot(demo_bundle.root_path)
        install(demo_bundle, plugin_root)
        assert snapshot(demo_bundle.root_path) == before


class TestInstallFailures:
    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="root ignores directory permissions",
    )
    def test_read_only_destination(
        self, demo_bundle: Bundle, tmp_path: Path, snapshot
    ) -> None:
        root = tmp_path / "read-only"
        root.mkdir()
        root.chmod(0o555)
        before = snapshot(demo_bundle.root_path)

        try:
            with pytest.raises(InstallFailed) as excinfo:
                install(demo_bundle, InstallTarget(destination_root=root))
        finally:
            root.chmod(0o755)

        err = excinfo.value
        assert err.exit_code == EXIT_INSTALL_FAILURE
        assert err.path == root / "Demo.vst3"
        assert "Permission denied" in str(err)
        assert not (root / "Demo.vst3").exists()
        assert snapshot(demo_bundle.root_path) == before

    def test_copy_failure_raises_install_failed(
        self, demo_bundle: Bundle, plugin_root: InstallTarget, snapshot
    ) -> None:
        before = snapshot(demo_bundle.root_path)

        with patch(
            "plugship.installer.shutil.copytree",
            side_effect=PermissionError(13, "Permission denied"),
        ):
            with pytest.raises(InstallFailed) as excinfo:
                install(demo_bundle, plugin_root)

        err = excinfo.value
        assert err.exit_code == EXIT_INSTALL_FAILURE
        assert err.errno == 13
        assert err.path == plugin_root.destination_root / "Demo.vst3"
        assert err.diagnostic().startswith("install: ")
        assert snapshot(demo_bundle.root_path) == before

    def test_root_is_a_file(self, demo_bundle: Bundle, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("file")
        with pytest.raises(InstallFailed):
            install(demo_bundle, InstallTarget(destination_root=blocker))

    def test_refuses_to_install_onto_itself(self, demo_bundle: Bundle) -> None:
        target = InstallTarget(destination_root=demo_bundle.root_path.parent)

        with pytest.raises(InstallFailed, match="onto itself"):
            install(demo_bundle, target)

        assert demo_bundle.binary_path.is_file()
