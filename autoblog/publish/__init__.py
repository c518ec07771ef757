from autoblog.publish.hook import run_publish_hook, select_channels

__all__ = ["run_publish_hook", "select_channels"]
