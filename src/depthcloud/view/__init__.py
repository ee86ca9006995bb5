from depthcloud.view.orbit import OrbitViewController, ViewState

__all__ = ["OrbitViewController", "ViewState"]
