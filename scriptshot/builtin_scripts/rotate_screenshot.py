# Built-in: rotate the screenshot 180 degrees, overwriting the original
log("[rotate] script started")

if not isinstance(screenshot_path, str) or not screenshot_path:
    log("[rotate] no screenshot path provided, skipping. Nothing to do.")
else:
    try:
        info = img.load(screenshot_path)
        log("[rotate] original size: %dx%d, type=%s" % (info.width, info.height, info.mime))
        if img.rotate(screenshot_path, 180):
            output_path = img.get_last_output_path()
            if output_path and output_path != screenshot_path:
                log("[rotate] rotated and saved a copy: " + output_path)
            else:
                log("[rotate] rotated 180 degrees and overwrote the original")
        else:
            log("[rotate] rotation failed, returned False")
    except ImageError as error:
        log("[rotate] rotation error: " + str(error))
