from __future__ import annotations


def test_public_api_exports() -> None:
    import depthcloud as dc

    assert hasattr(dc, "resolve")
    assert hasattr(dc, "project")
    assert hasattr(dc, "OrbitViewController")
    assert hasattr(dc, "PointCloudRenderer")
    assert hasattr(dc, "UnsupportedCameraError")
