# Built-in: open the share target for the screenshot
log("[quick share] script started")

if not isinstance(screenshot_path, str) or not screenshot_path:
    log("[quick share] no path to share, skipping. Nothing to do.")
else:
    try:
        share.image(screenshot_path)
        log("[quick share] share target opened")
    except ShareError as error:
        log("[quick share] share failed: " + str(error))
