"""
UI language
Thai by default; the readable ``locale`` cookie switches to English.
"""
LOCALES = ("th", "en")
DEFAULT_LOCALE = "th"
COOKIE_NAME = "locale"
COOKIE_MAX_AGE = 60 * 60 * 24 * 365

MESSAGES = {
    "en": {
        "appTitle": "Smart Visual Inspection",
        "home": "Home",
        "record": "Record",
        "report": "Report",
        "reportTable": "Report table",
        "startRecord": "Start record",
        "stopSave": "Stop & Save",
        "sessionName": "Session name",
        "itemName": "Item name",
        "addItem": "Add item",
        "remark": "Remark",
        "addRemark": "Add remark",
        "select": "Select",
        "storage": "Storage",
        "local": "Local",
        "drive": "Google Drive",
        "signInDrive": "Sign in to Drive",
        "signOut": "Sign out",
        "browseFolders": "Browse folders",
        "folderRoot": "My Drive (root)",
        "camera": "Camera",
        "defaultCamera": "Default camera",
        "disableCamera": "Disable camera",
        "notRecording": "Press start to begin a session.",
        "noItems": "No items",
        "noRemarks": "No remarks",
        "noSessions": "No sessions",
        "noVideo": "No video",
        "noRecords": "No records",
        "session": "Session",
        "selectASession": "Select a session",
        "remarkHistory": "Remark history",
        "recordName": "Record name",
        "item": "Item",
        "added": "Added",
        "duration": "Duration (s)",
        "remarks": "Remarks",
        "video": "Video",
        "view": "View",
        "delete": "Delete",
        "flat": "Flat",
        "grouped": "Grouped",
        "saving": "Saving...",
        "errorLoading": "Failed to load records",
    },
    "th": {
        "appTitle": "Smart Visual Inspection",
        "home": "หน้าแรก",
        "record": "บันทึก",
        "report": "รายงาน",
        "reportTable": "ตารางรายงาน",
        "startRecord": "เริ่มบันทึก",
        "stopSave": "หยุดและบันทึก",
        "sessionName": "ชื่อเซสชัน",
        "itemName": "ชื่อรายการ",
        "addItem": "เพิ่มรายการ",
        "remark": "หมายเหตุ",
        "addRemark": "เพิ่มหมายเหตุ",
        "select": "เลือก",
        "storage": "ที่จัดเก็บ",
        "local": "เครื่องนี้",
        "drive": "Google Drive",
        "signInDrive": "ลงชื่อเข้าใช้ Drive",
        "signOut": "ออกจากระบบ",
        "browseFolders": "เลือกโฟลเดอร์",
        "folderRoot": "ไดรฟ์ของฉัน (root)",
        "camera": "กล้อง",
        "defaultCamera": "กล้องเริ่มต้น",
        "disableCamera": "ปิดกล้อง",
        "notRecording": "กดเริ่มเพื่อเริ่มเซสชัน",
        "noItems": "ไม่มีรายการ",
        "noRemarks": "ไม่มีหมายเหตุ",
        "noSessions": "ไม่มีเซสชัน",
        "noVideo": "ไม่มีวิดีโอ",
        "noRecords": "ไม่มีข้อมูล",
        "session": "เซสชัน",
        "selectASession": "เลือกเซสชัน",
        "remarkHistory": "ประวัติหมายเหตุ",
        "recordName": "ชื่อบันทึก",
        "item": "รายการ",
        "added": "เวลาที่เพิ่ม",
        "duration": "ระยะเวลา (วินาที)",
        "remarks": "หมายเหตุ",
        "video": "วิดีโอ",
        "view": "ดู",
        "delete": "ลบ",
        "flat": "แบบรายการ",
        "grouped": "แบบกลุ่ม",
        "saving": "กำลังบันทึก...",
        "errorLoading": "โหลดข้อมูลไม่สำเร็จ",
    },
}


def resolve_locale(cookie_value) -> str:
    return "en" if cookie_value == "en" else DEFAULT_LOCALE


def translator(locale: str):
    messages = MESSAGES.get(locale, MESSAGES[DEFAULT_LOCALE])

    def t(key: str) -> str:
        return messages.get(key, key)

    return t
