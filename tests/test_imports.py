# test_imports.py
import sys
print("Python path:", sys.path)

try:
    import ai_writing_guard
    print("✅ ai_writing_guard imported successfully")
    print("Module location:", ai_writing_guard.__path__)
except ImportError as e:
    print("❌ Failed to import ai_writing_guard:", e)

try:
    from ai_writing_guard.sdk import WritingAssistant
    print("✅ WritingAssistant imported successfully")
except ImportError as e:
    print("❌ Failed to import WritingAssistant:", e)
