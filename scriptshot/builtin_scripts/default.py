# Built-in: report screenshot details and append to scripts/runtime.log
log("ScriptShot default script is running")

if screenshot_path:
    log("Screenshot path: " + screenshot_path)

    info = img.load(screenshot_path)
    log("Image size: %dx%d, bytes=%d" % (info.width, info.height, info.size))

    base64_length = len(img.to_base64(screenshot_path))
    log("Base64 payload length=%d" % base64_length)

    log_path = "scripts/runtime.log"
    existing = files.read(log_path) if files.exists(log_path) else ""
    files.write(
        log_path,
        existing + "Captured at " + datetime.now(timezone.utc).isoformat() + "\n",
    )
else:
    log("No screenshot_path provided. Nothing to do.")
