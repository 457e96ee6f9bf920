"""
SCORM runtime API shim

Builds the inline script served ahead of SCORM HTML so content can find
``window.API`` (SCORM 1.2) and ``window.API_1484_11`` (SCORM 2004). Values live
only in the page; every call is re-broadcast as a ``scorm-api-call`` DOM event
for debugging tools.
"""

import json

_SCRIPT_TEMPLATE = """
(function () {
  const packageId = __PACKAGE_ID__;
  const state12 = new Map();
  const state2004 = new Map();
  const lastError12 = { code: "0", message: "No error" };
  const lastError2004 = { code: "0", message: "No error" };

  function emit(api, method, args, result) {
    try {
      window.dispatchEvent(
        new CustomEvent("scorm-api-call", {
          detail: { packageId, api, method, args, result }
        })
      );
    } catch (error) {
      console.warn("SCORM debug emit failed", error);
    }
  }

  function wrapAPI(methods, apiName, state, lastError) {
    const api = {};
    Object.keys(methods).forEach(function (methodName) {
      api[methodName] = function () {
        const args = Array.prototype.slice.call(arguments);
        const result = methods[methodName].apply(null, [state, lastError].concat(args));
        emit(apiName, methodName, args, result);
        return result;
      };
    });
    return api;
  }

  function runtimeMethods() {
    return {
      Initialize(state, lastError) {
        lastError.code = "0";
        return "true";
      },
      Terminate() {
        return "true";
      },
      GetValue(state, lastError, key) {
        lastError.code = "0";
        const value = state.get(key);
        return value === undefined || value === null ? "" : value;
      },
      SetValue(state, lastError, key, value) {
        state.set(key, value);
        lastError.code = "0";
        return "true";
      },
      Commit() {
        return "true";
      },
      GetLastError(state, lastError) {
        return lastError.code;
      },
      GetErrorString(state, lastError, code) {
        return code === "0" ? "No error" : "General error";
      },
      GetDiagnostic() {
        return "";
      }
    };
  }

  const api12 = wrapAPI(runtimeMethods(), "SCORM12", state12, lastError12);
  const api2004 = wrapAPI(runtimeMethods(), "SCORM2004", state2004, lastError2004);

  if (!window.API) {
    window.API = api12;
  }
  if (!window.API_1484_11) {
    window.API_1484_11 = api2004;
  }
})();"""


def build_scorm_api_script(package_id: str) -> str:
    """Return the shim script for ``package_id``.

    The id is embedded as a JSON string literal with ``</`` escaped, so it can
    neither break out of the string nor close the surrounding ``<script>``.
    """
    safe_id = json.dumps(package_id).replace("</", "<\\/")
    return _SCRIPT_TEMPLATE.replace("__PACKAGE_ID__", safe_id)
