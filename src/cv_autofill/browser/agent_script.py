"""JavaScript agent injected into every page the engine works on.

It serialises the document for snapshots, performs and verifies writes on
elements addressed by ``data-autofill-ref`` and reports structural mutations
through the exposed ``__cvAutofillNotify`` binding.
"""

AGENT_GLOBAL = "__cvAutofill"
NOTIFY_BINDING = "__cvAutofillNotify"

AGENT_SCRIPT = r"""
(() => {
  if (window.__cvAutofill && window.__cvAutofill.version === 1) {
    return;
  }

  const REF_ATTR = 'data-autofill-ref';
  const SKIP_TAGS = new Set(['SCRIPT', 'STYLE', 'NOSCRIPT', 'TEMPLATE']);
  const FIELD_TAGS = new Set(['INPUT', 'TEXTAREA', 'SELECT']);
  const DISALLOWED = new Set(['hidden', 'submit', 'button', 'reset', 'file', 'image', 'checkbox', 'radio']);
  const WATCHED_ATTRS = ['class', 'id', 'name', 'placeholder', 'aria-label'];
  let counter = 0;

  const ensureRef = (el) => {
    let ref = el.getAttribute(REF_ATTR);
    if (!ref) {
      counter += 1;
      ref = 'af-' + Date.now().toString(36) + '-' + counter;
      el.setAttribute(REF_ATTR, ref);
    }
    return ref;
  };

  const find = (ref) => document.querySelector('[' + REF_ATTR + '="' + ref + '"]');

  const require = (ref) => {
    const el = find(ref);
    if (!el) {
      throw new Error('Element ' + ref + ' is no longer in the page');
    }
    return el;
  };

  // Elements under a display:none ancestor keep their own display value but have no boxes.
  const hasBoxes = (el, style) => el.getClientRects().length > 0 || style.position === 'fixed';

  const serialize = (el) => {
    const isField = FIELD_TAGS.has(el.tagName);
    const style = window.getComputedStyle(el);
    const rendered = hasBoxes(el, style);
    const attrs = {};
    for (const attr of el.attributes) {
      attrs[attr.name] = attr.value;
    }
    const node = {
      tag: el.tagName.toLowerCase(),
      attrs: attrs,
      value: isField ? (el.value || '') : '',
      style: {
        display: rendered ? style.display : 'none',
        visibility: style.visibility,
        opacity: style.opacity,
      },
      disabled: !!el.disabled,
      readOnly: !!el.readOnly,
      ref: isField ? ensureRef(el) : '',
      children: [],
    };
    if (isField) {
      node.attrs[REF_ATTR] = node.ref;
    }
    for (const child of el.childNodes) {
      if (child.nodeType === Node.TEXT_NODE) {
        node.children.push(child.textContent);
      } else if (child.nodeType === Node.ELEMENT_NODE && !SKIP_TAGS.has(child.tagName)) {
        node.children.push(serialize(child));
      }
    }
    return node;
  };

  const isRendered = (el) => {
    const style = window.getComputedStyle(el);
    return hasBoxes(el, style) && style.display !== 'none' && style.visibility !== 'hidden' &&
      style.opacity !== '0' && !el.disabled && !el.readOnly;
  };

  const isFillable = (el) => {
    if (!FIELD_TAGS.has(el.tagName)) return false;
    if (el.tagName === 'INPUT' && DISALLOWED.has((el.type || 'text').toLowerCase())) return false;
    return isRendered(el);
  };

  const setNativeValue = (el, value) => {
    const proto = Object.getPrototypeOf(el);
    const descriptor = Object.getOwnPropertyDescriptor(proto, 'value');
    if (descriptor && descriptor.set) {
      descriptor.set.call(el, value);
    } else {
      el.value = value;
    }
  };

  const dispatch = (el, types) => {
    for (const type of types) {
      const event = (type === 'keydown' || type === 'keyup')
        ? new KeyboardEvent(type, { bubbles: true, cancelable: true })
        : new Event(type, { bubbles: true, cancelable: true });
      el.dispatchEvent(event);
    }
  };

  const containsFields = (el) =>
    ['INPUT', 'TEXTAREA', 'SELECT', 'FORM'].includes(el.tagName) ||
    !!el.querySelector('input, textarea, select, form');

  const observe = () => {
    if (window.__cvAutofillObserver || !document.body) return;
    const observer = new MutationObserver((mutations) => {
      let relevant = false;
      for (const mutation of mutations) {
        if (mutation.type === 'childList') {
          for (const added of mutation.addedNodes) {
            if (added.nodeType === Node.ELEMENT_NODE && containsFields(added)) relevant = true;
          }
        } else if (mutation.type === 'attributes' && FIELD_TAGS.has(mutation.target.tagName)) {
          relevant = true;
        }
      }
      if (relevant && typeof window.__cvAutofillNotify === 'function') {
        window.__cvAutofillNotify();
      }
    });
    observer.observe(document.body, {
      childList: true, subtree: true, attributes: true, attributeFilter: WATCHED_ATTRS,
    });
    window.__cvAutofillObserver = observer;
  };

  window.__cvAutofill = {
    version: 1,
    ping: () => 'pong',
    snapshot: () => ({ url: location.href, root: serialize(document.documentElement) }),
    isFillable: (ref) => { const el = find(ref); return !!el && isFillable(el); },
    isUploadReady: (ref) => {
      const el = find(ref);
      return !!el && el.tagName === 'INPUT' && el.type === 'file' && isRendered(el);
    },
    readValue: (ref) => require(ref).value || '',
    writeValue: (ref, value) => {
      const el = require(ref);
      el.focus();
      setNativeValue(el, '');
      setNativeValue(el, value);
      dispatch(el, ['input', 'change', 'blur', 'keydown', 'keyup']);
      el.blur();
    },
    restoreValue: (ref, value) => { setNativeValue(require(ref), value); },
    afterFileAttach: (ref) => { dispatch(require(ref), ['blur', 'focus']); },
    fileNames: (ref) => Array.from(require(ref).files || []).map((f) => f.name),
    feedback: (ref, success, durationMs) => {
      const el = find(ref);
      if (!el) return;
      const original = {
        backgroundColor: el.style.backgroundColor,
        border: el.style.border,
        boxShadow: el.style.boxShadow,
      };
      const className = success ? 'autofill-success' : 'autofill-error';
      el.classList.remove('autofill-success', 'autofill-error');
      el.classList.add(className);
      el.style.backgroundColor = success ? '#e8f5e8' : '#ffeaea';
      el.style.border = success ? '2px solid #4caf50' : '2px solid #f44336';
      el.style.boxShadow = success ? '0 0 5px rgba(76, 175, 80, 0.3)' : '0 0 5px rgba(244, 67, 54, 0.3)';
      setTimeout(() => {
        el.classList.remove(className);
        Object.assign(el.style, original);
      }, durationMs);
    },
    summary: (message, success, durationMs) => {
      const note = document.createElement('div');
      note.textContent = message;
      note.style.cssText = 'position:fixed;top:20px;right:20px;color:white;padding:12px 20px;' +
        'border-radius:4px;font:14px Arial,sans-serif;z-index:10000;max-width:300px;' +
        'background:' + (success ? '#4caf50' : '#ff9800');
      document.body.appendChild(note);
      setTimeout(() => note.remove(), durationMs);
    },
    observe: observe,
  };

  if (document.body) {
    observe();
  } else {
    document.addEventListener('DOMContentLoaded', observe, { once: true });
  }
})();
"""
